#!/usr/bin/env python3
"""
GCS to S3 Video Migration

Copies dated video recordings from a Google Cloud Storage bucket to an S3
bucket. Objects already present in S3 are skipped, so the script can be
re-run after a partial failure.

Configure the migration section of config.yaml (or GCS_BUCKET, S3_BUCKET,
MIGRATION_CUTOFF_DATE, ... environment variables).
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from google.auth.exceptions import GoogleAuthError
from botocore.exceptions import BotoCoreError

from opstools.config import Config, ConfigError
from opstools.logger_config import setup_logging
from opstools.migrator import MigrationSettings, VideoMigrator
from opstools.object_store import GCSSource, S3Destination, create_gcs_client, create_s3_client

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = "logs/migrate_gcp_to_s3.log"


def main(argv=None):
    try:
        config = Config()
        settings = MigrationSettings.from_config(config)
    except ConfigError as e:
        print(f"❌ Failed to load configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(
        log_level=config.get('logging.level', 'INFO'),
        log_file=config.get('logging.log_file', DEFAULT_LOG_FILE) or None,
        verbose=config.get_bool('logging.verbose', False)
    )

    logger.info("Initializing GCS client...")
    try:
        gcs_client = create_gcs_client(settings.gcp_project)
    except GoogleAuthError as e:
        logger.error(f"❌ Failed to create GCS client: {e}")
        logger.error("   Please run: gcloud auth application-default login")
        sys.exit(1)

    logger.info("Initializing AWS session...")
    try:
        s3_client = create_s3_client(
            region=settings.aws_region,
            credentials_file=settings.aws_credentials_file,
            profile=settings.aws_profile
        )
    except BotoCoreError as e:
        logger.error(f"❌ Failed to create AWS session: {e}")
        sys.exit(1)

    migrator = VideoMigrator(
        source=GCSSource(gcs_client, settings.source_bucket),
        destination=S3Destination(s3_client, settings.dest_bucket),
        settings=settings
    )

    try:
        report = migrator.run()
    finally:
        gcs_client.close()

    if report.listing_failed:
        sys.exit(1)
    if report.interrupted:
        logger.warning("\n⚠️  Interrupted by user")
        sys.exit(130)


if __name__ == '__main__':
    main()
