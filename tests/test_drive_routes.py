from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.routes import drive as drive_routes
from drive_fakes import PDF, FakeDirectoryService, http_error, sample_drive


@pytest.fixture
def fake_drive():
    service = sample_drive()
    app.dependency_overrides[drive_routes.get_service] = lambda: service
    app.dependency_overrides[drive_routes.get_access_token] = lambda: "tok"
    yield service
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    assert client.get("/api/v1/health").json() == {"status": "ok"}


def test_tree_route(client, fake_drive):
    res = client.post("/drive/tree", json={})
    assert res.status_code == 200
    tree = res.json()
    assert tree["id"] == "root"
    assert [c["id"] for c in tree["children"]] == ["A", "B"]


def test_files_route_ignores_output_as_items(client, fake_drive):
    res = client.post("/drive/files", json={"includeFolders": True, "outputAsItems": True})
    assert res.status_code == 200
    assert [r["id"] for r in res.json()] == ["A", "B", "C"]


def test_remote_status_is_passed_through(client, fake_drive):
    fake_drive.failures["A"] = http_error(403)
    res = client.post("/drive/files", json={})
    assert res.status_code == 403
    body = res.json()
    assert body["item_index"] == 0
    assert body["detail"].startswith("403 Forbidden")


def test_execute_with_continue_on_fail(client, fake_drive):
    res = client.post(
        "/drive/execute",
        json={"operation": "downloadFile", "continueOnFail": True, "items": [{"json": {"n": 1}}, {}]},
    )
    assert res.status_code == 200
    items = res.json()["items"]
    assert items == [{"json": {"error": "File ID is required"}}, {"json": {"error": "File ID is required"}}]


def test_execute_without_continue_on_fail_is_a_client_error(client, fake_drive):
    res = client.post("/drive/execute", json={"operation": "downloadFile"})
    assert res.status_code == 400
    assert res.json() == {"detail": "File ID is required", "item_index": 0}


def test_download_content(client, fake_drive):
    fake_drive.files["f1"] = {"id": "f1", "name": "report.pdf", "mimeType": PDF}
    fake_drive.content["f1"] = b"%PDF"
    res = client.get("/drive/files/f1/content")
    assert res.status_code == 200
    assert res.content == b"%PDF"
    assert res.headers["content-type"].startswith(PDF)
    assert 'filename="report.pdf"' in res.headers["content-disposition"]


def test_download_export_format(client, fake_drive):
    fake_drive.files["d1"] = {"id": "d1", "name": "Sheet", "mimeType": "application/vnd.google-apps.spreadsheet"}
    fake_drive.content["d1"] = b"a,b"
    res = client.get("/drive/files/d1/content", params={"export_format": "csv"})
    assert res.status_code == 200
    assert fake_drive.exports == [("d1", "text/csv")]


def test_search_folders_route(client, fake_drive):
    fake_drive.search_results = [[{"id": "x", "name": "Projects", "webViewLink": "https://drive.google.com/x"}]]
    res = client.get("/drive/search/folders", params={"filter": "proj", "sort_order": "nameDesc"})
    assert res.status_code == 200
    assert res.json() == [{"name": "Projects", "value": "x", "url": "https://drive.google.com/x"}]
    assert fake_drive.searches[0]["order_by"] == "name"


def test_missing_token_is_unauthorized(client, monkeypatch, tmp_path):
    from config.settings import settings

    monkeypatch.setattr(settings, "GOOGLE_CREDENTIALS_FILE", str(tmp_path / "missing.json"))
    app.dependency_overrides[drive_routes.get_service] = lambda: FakeDirectoryService()
    try:
        res = client.post("/drive/tree", json={})
    finally:
        app.dependency_overrides.clear()
    assert res.status_code == 401
