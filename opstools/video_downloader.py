"""Video clip downloader built on yt-dlp"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

import yt_dlp
from yt_dlp.utils import download_range_func

logger = logging.getLogger(__name__)

DEFAULT_QUALITY = 360
OUTPUT_TEMPLATE = '%(title)s.%(ext)s'


def parse_timestamp(value: Union[str, int, float, None]) -> Optional[float]:
    """Convert ``HH:MM:SS``, ``MM:SS`` or plain seconds to seconds."""
    if value is None or value == '':
        return None
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        parts = str(value).strip().split(':')
        if len(parts) > 3:
            raise ValueError(f"Invalid timestamp: {value!r}")
        try:
            numbers = [float(part) for part in parts]
        except ValueError as e:
            raise ValueError(f"Invalid timestamp: {value!r}") from e
        seconds = 0.0
        for number in numbers:
            seconds = seconds * 60 + number
    if seconds < 0:
        raise ValueError(f"Timestamp must not be negative: {value!r}")
    return seconds


class VideoDownloader:
    def __init__(self, quality: int = DEFAULT_QUALITY, output_dir: Union[str, Path] = '.', cookie_file: Optional[str] = None):
        self.quality = quality
        self.output_dir = Path(output_dir)
        self.cookie_file = cookie_file

    def build_options(self, start_time=None, end_time=None) -> Dict:
        q = self.quality
        ydl_opts = {
            'format': f"bestvideo[height<={q}]+bestaudio/best[height<={q}]",
            'outtmpl': str(self.output_dir / OUTPUT_TEMPLATE),
            'noplaylist': True,
            'quiet': False,
        }

        start = parse_timestamp(start_time)
        end = parse_timestamp(end_time)
        if start is not None or end is not None:
            start = start or 0.0
            end = end if end is not None else float('inf')
            if end <= start:
                raise ValueError(f"End time {end_time!r} must be after start time {start_time!r}")
            ydl_opts['download_ranges'] = download_range_func(None, [(start, end)])

        if self.cookie_file and os.path.exists(self.cookie_file):
            ydl_opts['cookiefile'] = self.cookie_file

        return ydl_opts

    def download(self, url: str, start_time=None, end_time=None) -> Path:
        ydl_opts = self.build_options(start_time, end_time)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        section = ""
        if start_time or end_time:
            section = f" [{start_time or '0'} - {end_time or 'end'}]"
        logger.info(f"⬇️  Downloading {url}{section} at <= {self.quality}p")

        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(url, download=True)
            downloads = info.get('requested_downloads') or []
            if downloads and downloads[0].get('filepath'):
                file_path = Path(downloads[0]['filepath'])
            else:
                file_path = Path(ydl.prepare_filename(info))

        logger.info(f"✅ Download completed! Video saved to {file_path}")
        return file_path
