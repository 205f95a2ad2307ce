#!/usr/bin/env python3
"""
Clerk User Name Resolver

Reads an Excel workbook, looks up every Clerk user ID in the configured column
and writes <name>_updated.xlsx with the resolved names in a new column.

Usage: python resolve_usernames.py <path_of_excel_file>
Requires CLERK_SECRET_KEY (environment) or clerk.secret_key (config.yaml).
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from opstools.clerk_client import DEFAULT_CLERK_API, REQUEST_TIMEOUT, ClerkClient, ClerkError
from opstools.config import Config, ConfigError
from opstools.excel_processor import (
    BATCH_SIZE,
    HEADER_TITLE,
    OUTPUT_SUFFIX,
    USER_ID_COLUMN,
    ExcelFileError,
    UsernameExcelProcessor,
)
from opstools.logger_config import setup_logging

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

    file_path = args[0] if args else config.get('excel.input_file', '')
    if not file_path:
        logger.error("❌ Please provide the Excel file path")
        logger.error("   Usage: resolve_usernames.py <path_of_excel_file>")
        sys.exit(1)

    try:
        client = ClerkClient(
            secret_key=config.get('clerk.secret_key', '', env_var='CLERK_SECRET_KEY'),
            api_url=config.get('clerk.api_url', DEFAULT_CLERK_API),
            timeout=config.get_float('clerk.request_timeout', REQUEST_TIMEOUT)
        )
        processor = UsernameExcelProcessor(
            clerk_client=client,
            user_id_column=config.get_int('excel.user_id_column', USER_ID_COLUMN),
            max_workers=config.get_int('excel.batch_size', BATCH_SIZE),
            header_title=config.get('excel.header_title', HEADER_TITLE),
            output_suffix=config.get('excel.output_suffix', OUTPUT_SUFFIX)
        )
    except ClerkError as e:
        logger.error(f"❌ {e}")
        logger.error("   Set CLERK_SECRET_KEY environment variable or configure clerk.secret_key in config.yaml")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"❌ Invalid configuration: {e}")
        sys.exit(1)

    logger.info("=" * 80)
    logger.info("👤 Clerk User Name Resolver")
    logger.info("=" * 80)
    logger.info(f"Input file: {file_path}")
    logger.info(f"User ID column: {processor.user_id_column}")
    logger.info(f"Concurrent requests: {processor.pool.max_workers}")
    logger.info("=" * 80)

    try:
        report = processor.process(file_path)
    except ExcelFileError as e:
        logger.error(f"❌ Script failed: {e}")
        sys.exit(1)

    stats = report.statistics
    logger.info("\n" + "=" * 80)
    logger.info("📊 USER NAME SUMMARY")
    logger.info("=" * 80)
    logger.info(f"Rows without a user ID: {report.scan.skipped_rows}")
    logger.info(f"Users looked up: {stats.attempted}")
    logger.info(f"✅ Resolved: {stats.succeeded}")
    logger.info(f"❌ Unknown (lookup failed): {stats.failed}")
    logger.info(f"Output: {report.output_path}")
    logger.info("=" * 80)

    if report.interrupted:
        logger.warning("\n⚠️  Interrupted by user, remaining rows were left blank")
        sys.exit(130)


if __name__ == '__main__':
    main()
