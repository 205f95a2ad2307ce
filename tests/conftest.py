"""Shared fixtures. No network, GCS, S3 or Clerk access required."""

from __future__ import annotations

from pathlib import Path

import openpyxl
import pytest

HEADER = ["Name", "Email", "Plan", "Created", "User ID"]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Run every test from an empty directory so no stray config.yaml is picked up."""
    monkeypatch.chdir(tmp_path)
    for var in ("OPSTOOLS_CONFIG", "CLERK_SECRET_KEY", "GCS_BUCKET", "S3_BUCKET", "MIGRATION_CUTOFF_DATE"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def make_workbook(tmp_path):
    """Write a workbook whose fifth column holds user IDs; returns its path."""

    def _make(user_ids, name="users.xlsx"):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Users"
        ws.append(HEADER)
        for idx, user_id in enumerate(user_ids, start=1):
            ws.append([f"row{idx}", f"row{idx}@example.com", "pro", "2025-01-01", user_id])
        path = Path(tmp_path) / name
        wb.save(path)
        return path

    return _make
