"""GCS to S3 video migration

Lists every object in the source bucket, keeps video files whose date folder
(``port1/2025-09-07/recording.mp4``) is on or after the cutoff date, and
streams each one into the destination bucket under the same key unless the
key already exists there. Safe to re-run after a partial failure.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterator, List, Optional

import requests
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError

from .config import DATE_FORMAT, Config, ConfigError
from .models import FileJob, RunStatistics, ScanStatistics, WorkResult
from .object_store import CountingReader, GCSSource, S3Destination, gs_uri, s3_uri
from .worker_pool import BoundedWorkerPool

logger = logging.getLogger(__name__)

DEFAULT_CUTOFF_DATE = "2025-09-07"
DEFAULT_MAX_WORKERS = 20
DEFAULT_VIDEO_EXTENSIONS = ['.mp4', '.avi', '.mov', '.mkv', '.webm', '.m4v']
DATE_SEGMENT = 1
PROGRESS_INTERVAL = 10.0

COPY_ERRORS = (GoogleAPIError, GoogleAuthError, ClientError, BotoCoreError, S3UploadFailedError, OSError)
LISTING_ERRORS = (GoogleAPIError, GoogleAuthError, requests.RequestException)


def is_video_file(name: str, extensions: List[str]) -> bool:
    lowered = name.lower()
    return any(lowered.endswith(ext.lower()) for ext in extensions)


def extract_date_from_path(path: str, segment: int = DATE_SEGMENT) -> Optional[date]:
    """Parse the YYYY-MM-DD folder at ``segment`` of an object path.

    Returns None when the path is too shallow or the folder is not a date;
    callers treat such objects as not eligible.
    """
    parts = path.split('/')
    if len(parts) <= segment:
        return None
    try:
        return datetime.strptime(parts[segment], DATE_FORMAT).date()
    except ValueError:
        return None


@dataclass
class MigrationSettings:
    source_bucket: str
    dest_bucket: str
    cutoff_date: date
    max_workers: int = DEFAULT_MAX_WORKERS
    video_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_VIDEO_EXTENSIONS))
    prefix: str = ''
    date_segment: int = DATE_SEGMENT
    progress_interval: float = PROGRESS_INTERVAL
    aws_region: Optional[str] = None
    aws_credentials_file: Optional[str] = None
    aws_profile: Optional[str] = None
    gcp_project: Optional[str] = None

    @classmethod
    def from_config(cls, config: Config) -> 'MigrationSettings':
        source_bucket = config.get('migration.source_bucket', '', env_var='GCS_BUCKET')
        dest_bucket = config.get('migration.dest_bucket', '', env_var='S3_BUCKET')
        if not source_bucket:
            raise ConfigError("Source bucket not configured (migration.source_bucket or GCS_BUCKET)")
        if not dest_bucket:
            raise ConfigError("Destination bucket not configured (migration.dest_bucket or S3_BUCKET)")

        max_workers = config.get_int('migration.max_workers', DEFAULT_MAX_WORKERS)
        if max_workers < 1:
            raise ConfigError(f"migration.max_workers must be positive, got {max_workers}")

        extensions = config.get_list('migration.video_extensions', DEFAULT_VIDEO_EXTENSIONS)
        extensions = [ext if ext.startswith('.') else f'.{ext}' for ext in extensions]

        return cls(
            source_bucket=source_bucket,
            dest_bucket=dest_bucket,
            cutoff_date=config.get_date('migration.cutoff_date', DEFAULT_CUTOFF_DATE),
            max_workers=max_workers,
            video_extensions=extensions,
            prefix=config.get('migration.prefix', '') or '',
            date_segment=config.get_int('migration.date_segment', DATE_SEGMENT),
            progress_interval=config.get_float('migration.progress_interval', PROGRESS_INTERVAL),
            aws_region=config.get('aws.region', None, env_var='AWS_REGION'),
            aws_credentials_file=config.get('aws.credentials_file', None, env_var='AWS_SHARED_CREDENTIALS_FILE'),
            aws_profile=config.get('aws.profile', None, env_var='AWS_PROFILE'),
            gcp_project=config.get('gcp.project', None, env_var='GOOGLE_CLOUD_PROJECT'),
        )


@dataclass
class MigrationReport:
    scan: ScanStatistics
    statistics: RunStatistics
    elapsed: float
    interrupted: bool = False
    listing_failed: bool = False


class ProgressMonitor(threading.Thread):
    def __init__(self, statistics: RunStatistics, scan: ScanStatistics, interval: float = PROGRESS_INTERVAL):
        super().__init__(name="progress-monitor", daemon=True)
        self.statistics = statistics
        self.scan = scan
        self.interval = interval
        self._done = threading.Event()
        self._started_at = time.monotonic()

    def run(self):
        while not self._done.wait(self.interval):
            self.report()

    def report(self):
        elapsed = time.monotonic() - self._started_at
        snap = self.statistics.snapshot()
        rate = snap['attempted'] / elapsed if elapsed > 0 else 0.0
        logger.info(f"⏱ Progress Update ({elapsed:.0f}s elapsed, {rate:.1f} files/sec):")
        logger.info(f"   Processed: {snap['attempted']}/{self.scan.queued} files")
        logger.info(f"   ✓ Copied: {snap['succeeded']}")
        logger.info(f"   ⊘ Skipped (already exist): {snap['skipped']}")
        logger.info(f"   ✗ Errors: {snap['failed']}")

    def stop(self):
        self._done.set()
        if self.is_alive():
            self.join()


class VideoMigrator:
    def __init__(self, source: GCSSource, destination: S3Destination, settings: MigrationSettings):
        self.source = source
        self.destination = destination
        self.settings = settings
        self.pool = BoundedWorkerPool(settings.max_workers, name="migrate")
        self.scan = ScanStatistics()
        self.listing_failed = False

    def eligible_jobs(self) -> Iterator[FileJob]:
        cutoff = self.settings.cutoff_date
        objects = iter(self.source.list_objects(self.settings.prefix))

        while True:
            try:
                obj = next(objects)
            except StopIteration:
                break
            except LISTING_ERRORS as e:
                logger.error(f"❌ Error listing {gs_uri(self.settings.source_bucket)}: {e}")
                self.listing_failed = True
                break

            if obj.name.endswith('/'):
                continue
            if not is_video_file(obj.name, self.settings.video_extensions):
                continue

            self.scan.scanned += 1
            logger.debug(f"Scanning [{self.scan.scanned}]: {obj.name}")

            folder_date = extract_date_from_path(obj.name, self.settings.date_segment)
            if folder_date is None:
                logger.info(f"  ✗ Skipped: Could not extract valid date from path {obj.name}")
                self.scan.undated += 1
                self.scan.skipped_by_date += 1
                continue

            if folder_date < cutoff:
                logger.debug(f"  ✗ Skipped: {obj.name} dated {folder_date} (before {cutoff})")
                self.scan.skipped_by_date += 1
                continue

            self.scan.queued += 1
            yield FileJob(source_key=obj.name, dest_key=obj.name, folder_date=folder_date, size=obj.size)

    def copy_object(self, job: FileJob) -> WorkResult:
        worker = threading.current_thread().name
        try:
            if self.destination.exists(job.dest_key):
                logger.info(f"  {worker} - ⊘ {job.dest_key} already exists in S3, skipping")
                return WorkResult.skip(job, "already exists")

            size_str = f" ({job.size / (1024 * 1024):.2f} MB)" if job.size is not None else ""
            logger.info(f"  {worker} - ⬆ Copying {job.source_key} (dated {job.folder_date}){size_str}...")
            started = time.monotonic()

            reader = CountingReader(self.source.open(job.source_key))
            try:
                self.destination.upload_stream(reader, job.dest_key)
            finally:
                reader.close()
        except COPY_ERRORS as e:
            logger.error(f"  {worker} - ✗ Error copying {job.source_key}: {e}")
            return WorkResult.failed(job, f"{type(e).__name__}: {e}")

        logger.info(f"  {worker} - ✓ Copied {job.source_key} in {time.monotonic() - started:.1f}s")
        return WorkResult.ok(job, reader.bytes_read)

    def run(self) -> MigrationReport:
        settings = self.settings
        logger.info("Starting migration from GCS to S3...")
        logger.info(f"Cutoff date: {settings.cutoff_date} (only copying files from this date onwards)")
        logger.info(f"Source: {gs_uri(settings.source_bucket, settings.prefix)}")
        logger.info(f"Destination: {s3_uri(settings.dest_bucket)}")
        logger.info(f"Max concurrent workers: {settings.max_workers}")

        self.scan = ScanStatistics()
        self.listing_failed = False
        statistics = RunStatistics()
        monitor = ProgressMonitor(statistics, self.scan, settings.progress_interval)

        started = time.monotonic()
        monitor.start()
        try:
            summary = self.pool.run(self.eligible_jobs(), self.copy_object, statistics.record)
        finally:
            monitor.stop()
        elapsed = time.monotonic() - started

        report = MigrationReport(
            scan=self.scan,
            statistics=statistics,
            elapsed=elapsed,
            interrupted=summary.interrupted,
            listing_failed=self.listing_failed or summary.source_error is not None,
        )
        self._print_summary(report)
        return report

    def _print_summary(self, report: MigrationReport):
        scan = report.scan
        stats = report.statistics.snapshot()
        elapsed = report.elapsed

        logger.info("=" * 40)
        logger.info("           MIGRATION COMPLETE           ")
        logger.info("=" * 40)
        logger.info("Scanning Phase:")
        logger.info(f"  Total video files scanned: {scan.scanned}")
        logger.info(f"  Files skipped (before cutoff {self.settings.cutoff_date}): {scan.skipped_by_date}")
        logger.info(f"    of which without a date folder: {scan.undated}")
        logger.info(f"  Files queued for copying: {scan.queued}")
        logger.info("Processing Phase:")
        logger.info(f"  Total files processed: {stats['attempted']}")
        logger.info(f"  ✓ Files copied to S3: {stats['succeeded']}")
        logger.info(f"  ⊘ Files skipped (already exist): {stats['skipped']}")
        logger.info(f"  ✗ Errors: {stats['failed']}")
        logger.info(f"  Bytes copied: {stats['bytes_copied'] / (1024 * 1024):.2f} MB")
        logger.info("Performance:")
        logger.info(f"  Total time: {elapsed:.1f} seconds ({elapsed / 60:.1f} minutes)")
        if stats['succeeded'] > 0 and elapsed > 0:
            logger.info(f"  Average time per file: {elapsed / stats['succeeded']:.1f} seconds")
            logger.info(f"  Processing rate: {stats['attempted'] / elapsed:.2f} files/second")
        if report.interrupted:
            logger.warning("⚠️  Run was interrupted before every object was scanned")
        if report.listing_failed:
            logger.error("❌ Listing the source bucket failed, the run is incomplete")
        logger.info("=" * 40)
