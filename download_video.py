#!/usr/bin/env python3
"""
Video Clip Downloader

Downloads a section of a video with yt-dlp at a capped resolution.

Usage: python download_video.py [url ...]
URLs default to download.url in config.yaml; quality, start/end time and the
destination folder come from the download section (or DOWNLOAD_* variables).
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from yt_dlp.utils import DownloadError

from opstools.config import Config, ConfigError
from opstools.logger_config import setup_logging
from opstools.video_downloader import DEFAULT_QUALITY, VideoDownloader

logger = logging.getLogger(__name__)


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv

    try:
        config = Config()
    except ConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(
        log_level=config.get('logging.level', 'INFO'),
        log_file=config.get('logging.log_file', '') or None,
        verbose=config.get_bool('logging.verbose', False)
    )

    urls = list(args) or config.get_list('download.url')
    if not urls:
        logger.error("❌ No video URL given")
        logger.error("   Pass it as an argument or set download.url in config.yaml")
        sys.exit(1)

    start_time = config.get('download.start_time', None)
    end_time = config.get('download.end_time', None)
    # quality is lowered by hand when a format is unavailable
    downloader = VideoDownloader(
        quality=config.get_int('download.quality', DEFAULT_QUALITY),
        output_dir=config.get('download.output_dir', str(Path(__file__).parent)),
        cookie_file=config.get('download.cookie_file', 'cookies.txt')
    )

    failed = 0
    for url in urls:
        try:
            downloader.download(url, start_time=start_time, end_time=end_time)
        except ValueError as e:
            logger.error(f"❌ Invalid section for {url}: {e}")
            sys.exit(1)
        except DownloadError as e:
            logger.error(f"❌ Download failed for {url}: {e}")
            failed += 1
        except KeyboardInterrupt:
            logger.warning("\n\n⚠️  Interrupted by user")
            sys.exit(130)

    if failed:
        logger.error(f"\n❌ {failed}/{len(urls)} download(s) failed")
        sys.exit(1)


if __name__ == '__main__':
    main()
