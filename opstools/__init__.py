"""
Operational scripts shared package

Structure:
    - config.py: YAML config with environment variable overrides
    - logger_config.py: Console/file logging setup
    - models.py: Work items, results and run counters
    - worker_pool.py: Bounded thread pool that funnels results to one writer
    - clerk_client.py: Clerk user lookup and display-name rules
    - excel_processor.py: Add resolved user names to an Excel workbook
    - object_store.py: GCS source / S3 destination adapters
    - migrator.py: Dated video migration from GCS to S3
    - video_downloader.py: yt-dlp clip downloader
"""
