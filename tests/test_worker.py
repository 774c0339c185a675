from __future__ import annotations

import base64
from pathlib import Path

from infra.storage.local import LocalStorage
from drive_fakes import PDF, FakeDirectoryService, sample_drive

import workers.celery_worker as worker


def test_worker_runs_traversal(monkeypatch, tmp_path):
    monkeypatch.setattr(worker, "get_connector", lambda name: sample_drive())
    monkeypatch.setattr(worker, "LocalStorage", lambda: LocalStorage(str(tmp_path)))

    out = worker.run_drive_node({"parameters": {"operation": "fileList"}, "access_token": "tok"})

    assert [r["id"] for r in out["items"][0]["json"]] == ["B", "C"]


def test_worker_offloads_downloads_to_storage(monkeypatch, tmp_path):
    drive = FakeDirectoryService()
    drive.files["f1"] = {"id": "f1", "name": "report.pdf", "mimeType": PDF}
    drive.content["f1"] = b"%PDF-1.4"
    monkeypatch.setattr(worker, "get_connector", lambda name: drive)
    monkeypatch.setattr(worker, "LocalStorage", lambda: LocalStorage(str(tmp_path)))

    out = worker.run_drive_node(
        {"parameters": {"operation": "downloadFile", "fileId": "f1"}, "access_token": "tok"}
    )

    binary = out["items"][0]["binary"]["data"]
    assert binary["data"] == ""
    assert binary["fileSize"] == 8
    assert Path(binary["path"]).read_bytes() == b"%PDF-1.4"


def test_worker_reports_item_errors_when_continuing(monkeypatch, tmp_path):
    monkeypatch.setattr(worker, "get_connector", lambda name: FakeDirectoryService())
    monkeypatch.setattr(worker, "LocalStorage", lambda: LocalStorage(str(tmp_path)))

    out = worker.run_drive_node(
        {
            "parameters": {"operation": "downloadFile"},
            "items": [{"json": {}, "binary": {"old": {"data": base64.b64encode(b"x").decode(), "fileName": "x"}}}],
            "continue_on_fail": True,
            "access_token": "tok",
        }
    )

    assert out["items"] == [{"json": {"error": "File ID is required"}}]
