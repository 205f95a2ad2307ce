"""Tests for the GCS to S3 video migration."""

from __future__ import annotations

import io
import logging
import threading
import time
from datetime import date

import pytest
import requests
from botocore.exceptions import ClientError
from google.api_core.exceptions import NotFound, ServiceUnavailable
from google.auth.exceptions import RefreshError

from opstools.config import Config, ConfigError
from opstools.migrator import (
    DEFAULT_VIDEO_EXTENSIONS,
    MigrationSettings,
    ProgressMonitor,
    VideoMigrator,
    extract_date_from_path,
    is_video_file,
)
from opstools.models import RunStatistics, ScanStatistics, WorkResult
from opstools.object_store import StoredObject


class FakeSource:
    def __init__(self, objects, fail_open=(), fail_listing_after=None, listing_error=None):
        self.objects = objects
        self.fail_open = set(fail_open)
        self.fail_listing_after = fail_listing_after
        self.listing_error = listing_error or ServiceUnavailable("listing broke")
        self.opened = []

    def list_objects(self, prefix=""):
        for idx, (name, data) in enumerate(self.objects.items()):
            if self.fail_listing_after is not None and idx >= self.fail_listing_after:
                raise self.listing_error
            if name.startswith(prefix):
                yield StoredObject(name=name, size=len(data))

    def open(self, name):
        if name in self.fail_open:
            raise NotFound(name)
        reader = io.BytesIO(self.objects[name])
        self.opened.append(reader)
        return reader


class FakeDestination:
    def __init__(self, existing=None, fail_upload=()):
        self.store = dict(existing or {})
        self.fail_upload = set(fail_upload)
        self.lock = threading.Lock()

    def exists(self, key):
        with self.lock:
            return key in self.store

    def upload_stream(self, reader, key):
        chunks = []
        while True:
            chunk = reader.read(4)
            if not chunk:
                break
            chunks.append(chunk)
        if key in self.fail_upload:
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "UploadPart")
        with self.lock:
            self.store[key] = b"".join(chunks)


def _settings(**overrides):
    values = dict(
        source_bucket="src",
        dest_bucket="dest",
        cutoff_date=date(2025, 9, 7),
        max_workers=3,
        progress_interval=60.0,
    )
    values.update(overrides)
    return MigrationSettings(**values)


SOURCE_OBJECTS = {
    "port1/2025-09-06/early.mp4": b"early",
    "port1/2025-09-07/cutoff.mp4": b"on the cutoff",
    "port1/2025-09-08/later.MOV": b"later",
    "port2/2025-10-01/notes.txt": b"not a video",
    "port2/2025-10-01/": b"",
    "port2/not-a-date/clip.mkv": b"undated",
    "loose.mp4": b"no folder",
}


class TestFilters:
    def test_is_video_file_is_case_insensitive(self):
        assert is_video_file("a/b/clip.MP4", DEFAULT_VIDEO_EXTENSIONS)
        assert is_video_file("clip.webm", DEFAULT_VIDEO_EXTENSIONS)
        assert not is_video_file("clip.txt", DEFAULT_VIDEO_EXTENSIONS)
        assert not is_video_file("mp4", DEFAULT_VIDEO_EXTENSIONS)

    def test_extract_date(self):
        assert extract_date_from_path("port1/2025-07-15/recording.mp4") == date(2025, 7, 15)

    @pytest.mark.parametrize("path", ["recording.mp4", "port1/recording.mp4", "port1/2025-13-01/a.mp4"])
    def test_extract_date_unparseable(self, path):
        assert extract_date_from_path(path) is None

    def test_extract_date_other_segment(self):
        assert extract_date_from_path("2025-01-02/port1/a.mp4", segment=0) == date(2025, 1, 2)


def test_eligible_jobs_applies_cutoff_inclusively():
    migrator = VideoMigrator(FakeSource(SOURCE_OBJECTS), FakeDestination(), _settings())

    jobs = list(migrator.eligible_jobs())

    assert [j.source_key for j in jobs] == ["port1/2025-09-07/cutoff.mp4", "port1/2025-09-08/later.MOV"]
    assert all(j.dest_key == j.source_key for j in jobs)
    assert jobs[0].folder_date == date(2025, 9, 7)
    assert migrator.scan.scanned == 5
    assert migrator.scan.queued == 2
    assert migrator.scan.skipped_by_date == 3
    assert migrator.scan.undated == 2


def test_run_copies_eligible_objects():
    source = FakeSource(SOURCE_OBJECTS)
    destination = FakeDestination()

    report = VideoMigrator(source, destination, _settings()).run()

    assert destination.store == {
        "port1/2025-09-07/cutoff.mp4": b"on the cutoff",
        "port1/2025-09-08/later.MOV": b"later",
    }
    stats = report.statistics
    assert stats.attempted == report.scan.queued == 2
    assert stats.succeeded == 2
    assert stats.skipped == 0
    assert stats.failed == 0
    assert stats.bytes_copied == len(b"on the cutoff") + len(b"later")
    assert all(reader.closed for reader in source.opened)
    assert not report.interrupted
    assert not report.listing_failed


def test_rerun_is_idempotent():
    destination = FakeDestination()
    VideoMigrator(FakeSource(SOURCE_OBJECTS), destination, _settings()).run()

    report = VideoMigrator(FakeSource(SOURCE_OBJECTS), destination, _settings()).run()

    assert report.statistics.bytes_copied == 0
    assert report.statistics.succeeded == 0
    assert report.statistics.skipped == report.scan.queued == 2


def test_failed_upload_is_counted_and_not_stored():
    source = FakeSource(SOURCE_OBJECTS)
    destination = FakeDestination(fail_upload={"port1/2025-09-08/later.MOV"})

    report = VideoMigrator(source, destination, _settings()).run()

    assert "port1/2025-09-08/later.MOV" not in destination.store
    assert report.statistics.failed == 1
    assert report.statistics.succeeded == 1
    assert all(reader.closed for reader in source.opened)


def test_failed_open_is_counted():
    source = FakeSource(SOURCE_OBJECTS, fail_open={"port1/2025-09-07/cutoff.mp4"})

    report = VideoMigrator(source, FakeDestination(), _settings()).run()

    assert report.statistics.failed == 1
    assert report.statistics.attempted == 2


def test_existence_check_error_is_a_failure():
    class DeniedDestination(FakeDestination):
        def exists(self, key):
            raise ClientError({"Error": {"Code": "403", "Message": "denied"}}, "HeadObject")

    report = VideoMigrator(FakeSource(SOURCE_OBJECTS), DeniedDestination(), _settings()).run()

    assert report.statistics.failed == 2
    assert report.statistics.succeeded == 0


def test_listing_failure_is_reported():
    source = FakeSource(SOURCE_OBJECTS, fail_listing_after=2)

    report = VideoMigrator(source, FakeDestination(), _settings()).run()

    assert report.listing_failed
    assert report.statistics.attempted == report.scan.queued == 1


@pytest.mark.parametrize("error", [RefreshError("token expired"), requests.ConnectionError("reset")])
def test_auth_or_transport_error_while_listing_is_reported(error):
    source = FakeSource(SOURCE_OBJECTS, fail_listing_after=2, listing_error=error)
    destination = FakeDestination()

    report = VideoMigrator(source, destination, _settings()).run()

    assert report.listing_failed
    assert report.statistics.succeeded == 1
    assert list(destination.store) == ["port1/2025-09-07/cutoff.mp4"]


def test_many_objects_each_processed_once():
    objects = {f"cam/2025-09-{day:02d}/clip{i}.mp4": bytes([i % 256]) * 3 for day in range(1, 31) for i in range(5)}
    destination = FakeDestination()

    report = VideoMigrator(FakeSource(objects), destination, _settings(max_workers=4)).run()

    eligible = [k for k in objects if k.split("/")[1] >= "2025-09-07"]
    assert report.scan.queued == len(eligible)
    assert report.statistics.attempted == len(eligible)
    assert sorted(destination.store) == sorted(eligible)


class TestSettings:
    def test_from_config_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("migration:\n  source_bucket: src\n  dest_bucket: dest\n")

        settings = MigrationSettings.from_config(Config(str(path)))

        assert settings.cutoff_date == date(2025, 9, 7)
        assert settings.max_workers == 20
        assert settings.video_extensions == DEFAULT_VIDEO_EXTENSIONS

    def test_from_config_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(
            "migration:\n"
            "  source_bucket: src\n"
            "  dest_bucket: dest\n"
            "  cutoff_date: 2025-01-31\n"
            "  max_workers: 4\n"
            "  video_extensions: [mp4, .MOV]\n"
        )
        monkeypatch.setenv("S3_BUCKET", "other-dest")

        settings = MigrationSettings.from_config(Config(str(path)))

        assert settings.dest_bucket == "other-dest"
        assert settings.cutoff_date == date(2025, 1, 31)
        assert settings.max_workers == 4
        assert settings.video_extensions == [".mp4", ".MOV"]

    def test_missing_bucket_is_fatal(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("migration:\n  source_bucket: src\n")

        with pytest.raises(ConfigError, match="Destination bucket"):
            MigrationSettings.from_config(Config(str(path)))

    def test_bad_cutoff_is_fatal(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GCS_BUCKET", "src")
        monkeypatch.setenv("S3_BUCKET", "dest")
        monkeypatch.setenv("MIGRATION_CUTOFF_DATE", "07/09/2025")

        with pytest.raises(ConfigError, match="cutoff_date"):
            MigrationSettings.from_config(Config(str(tmp_path / "absent.yaml")))


class TestProgressMonitor:
    def test_report_logs_counters(self, caplog):
        statistics = RunStatistics()
        statistics.record(WorkResult.ok("a", 10))
        statistics.record(WorkResult.skip("b", "already exists"))
        statistics.record(WorkResult.failed("c", "boom"))
        scan = ScanStatistics(queued=5)

        with caplog.at_level(logging.INFO, logger="opstools.migrator"):
            ProgressMonitor(statistics, scan, interval=60).report()

        text = caplog.text
        assert "Progress Update" in text
        assert "Processed: 3/5 files" in text
        assert "Copied: 1" in text
        assert "Skipped (already exist): 1" in text
        assert "Errors: 1" in text

    def test_reports_periodically_and_stops(self, caplog):
        monitor = ProgressMonitor(RunStatistics(), ScanStatistics(), interval=0.01)

        with caplog.at_level(logging.INFO, logger="opstools.migrator"):
            monitor.start()
            time.sleep(0.1)
            monitor.stop()

        assert not monitor.is_alive()
        assert "Progress Update" in caplog.text

    def test_stop_before_start_is_safe(self):
        monitor = ProgressMonitor(RunStatistics(), ScanStatistics())
        monitor.stop()
        assert not monitor.is_alive()
