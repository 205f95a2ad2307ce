"""End-to-end checks for the command-line entry points."""

from __future__ import annotations

import os
import signal
import time
from unittest.mock import MagicMock, patch

import openpyxl
import pytest

import download_video
import migrate_videos
import resolve_usernames


def _clerk_response(user_id):
    response = MagicMock()
    if user_id == "user_down":
        response.status_code = 503
    else:
        response.status_code = 200
        response.json.return_value = {"first_name": user_id.title(), "last_name": "Test"}
    return response


class TestResolveUsernames:
    def test_missing_secret_key_exits_non_zero(self, make_workbook):
        path = make_workbook(["user_a"])
        with pytest.raises(SystemExit) as exc:
            resolve_usernames.main([str(path)])
        assert exc.value.code == 1

    def test_missing_path_exits_non_zero(self, monkeypatch):
        monkeypatch.setenv("CLERK_SECRET_KEY", "sk_test")
        with pytest.raises(SystemExit) as exc:
            resolve_usernames.main([])
        assert exc.value.code == 1

    def test_unsupported_file_exits_non_zero(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CLERK_SECRET_KEY", "sk_test")
        path = tmp_path / "users.xls"
        path.write_bytes(b"")
        with pytest.raises(SystemExit) as exc:
            resolve_usernames.main([str(path)])
        assert exc.value.code == 1

    def test_partial_failures_still_complete(self, make_workbook, monkeypatch):
        monkeypatch.setenv("CLERK_SECRET_KEY", "sk_test")
        path = make_workbook(["user_a", "user_down"])

        def fake_get(url, headers, timeout):
            assert headers == {"Authorization": "Bearer sk_test"}
            return _clerk_response(url.rsplit("/", 1)[-1])

        with patch("opstools.clerk_client.requests.get", side_effect=fake_get):
            resolve_usernames.main([str(path)])

        sheet = openpyxl.load_workbook(path.with_name("users_updated.xlsx")).worksheets[0]
        assert sheet["F1"].value == "User Name"
        assert sheet["F2"].value == "User_A Test"
        assert sheet["F3"].value == "Unknown User (user_down)"

    def test_interrupt_exits_130_with_partial_output(self, make_workbook, monkeypatch):
        monkeypatch.setenv("CLERK_SECRET_KEY", "sk_test")
        path = make_workbook([f"user_{i}" for i in range(30)])

        def slow_get(url, headers, timeout):
            user_id = url.rsplit("/", 1)[-1]
            if user_id == "user_0":
                os.kill(os.getpid(), signal.SIGINT)
            time.sleep(0.2)
            return _clerk_response(user_id)

        with patch("opstools.clerk_client.requests.get", side_effect=slow_get):
            with pytest.raises(SystemExit) as exc:
                resolve_usernames.main([str(path)])

        assert exc.value.code == 130
        sheet = openpyxl.load_workbook(path.with_name("users_updated.xlsx")).worksheets[0]
        assert sheet["F2"].value == "User_0 Test"
        assert sheet["F31"].value is None


class TestMigrateVideos:
    def test_missing_buckets_exit_non_zero(self):
        with pytest.raises(SystemExit) as exc:
            migrate_videos.main([])
        assert exc.value.code == 1


class TestDownloadVideo:
    def test_no_url_exits_non_zero(self):
        with pytest.raises(SystemExit) as exc:
            download_video.main([])
        assert exc.value.code == 1

    def test_download_failure_exits_non_zero(self, tmp_path, monkeypatch):
        from yt_dlp.utils import DownloadError

        monkeypatch.setenv("DOWNLOAD_OUTPUT_DIR", str(tmp_path / "out"))
        with patch("opstools.video_downloader.yt_dlp.YoutubeDL") as ydl_cls:
            ydl_cls.return_value.__enter__.return_value.extract_info.side_effect = DownloadError("format unavailable")
            with pytest.raises(SystemExit) as exc:
                download_video.main(["https://youtu.be/abc"])
        assert exc.value.code == 1
