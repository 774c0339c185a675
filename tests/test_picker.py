from __future__ import annotations

from connectors.base import FOLDER_MIME_TYPE
from core.picker import MY_DRIVE, order_by_for, search_files, search_folders, sort_results
from drive_fakes import FakeDirectoryService, http_error


def found(*names: str, **extra) -> list[dict]:
    return [{"id": f"id-{n}", "name": n, "webViewLink": f"https://drive.google.com/{n}", **extra} for n in names]


def test_my_drive_leads_unfiltered_results():
    drive = FakeDirectoryService()
    drive.search_results = [found("beta", "Alpha")]

    results = search_folders(drive, access_token="tok")

    assert results[0] == MY_DRIVE
    assert [r.name for r in results[1:]] == ["Alpha", "beta"]
    assert drive.searches[0]["query"] == f"mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
    assert drive.searches[0]["order_by"] == "name"


def test_filter_is_escaped_and_hides_my_drive_when_it_does_not_match():
    drive = FakeDirectoryService()
    drive.search_results = [found("Bob's files")]

    results = search_folders(drive, access_token="tok", filter="bob's")

    assert MY_DRIVE not in results
    assert drive.searches[0]["query"].endswith("and name contains 'bob\\'s'")
    assert [r.value for r in results] == ["id-Bob's files"]


def test_my_drive_kept_when_filter_matches_it():
    drive = FakeDirectoryService()
    results = search_folders(drive, access_token="tok", filter="drive")
    assert results == [MY_DRIVE]


def test_results_capped_at_twenty_including_my_drive():
    drive = FakeDirectoryService()
    drive.search_results = [found(*[f"f{i:02d}" for i in range(15)]), found(*[f"g{i:02d}" for i in range(15)])]

    results = search_folders(drive, access_token="tok")

    assert len(results) == 20
    assert results[0] == MY_DRIVE
    assert [s["page_token"] for s in drive.searches] == [None, "1"]


def test_search_error_falls_back_to_my_drive():
    drive = FakeDirectoryService()
    drive.search_failure = http_error(401)
    assert search_folders(drive, access_token="tok", filter="anything") == [MY_DRIVE]


def test_sort_orders():
    files = [
        {"name": "b", "modifiedTime": "2024-01-02T00:00:00Z", "createdTime": "2023-01-01T00:00:00Z"},
        {"name": "A", "modifiedTime": "2024-01-01T00:00:00Z", "createdTime": "2023-06-01T00:00:00Z"},
        {"name": "c"},
    ]
    assert [f["name"] for f in sort_results(files, "nameAsc")] == ["A", "b", "c"]
    assert [f["name"] for f in sort_results(files, "nameDesc")] == ["c", "b", "A"]
    assert [f["name"] for f in sort_results(files, "modifiedDesc")] == ["b", "A", "c"]
    assert [f["name"] for f in sort_results(files, "modifiedAsc")] == ["c", "A", "b"]
    assert [f["name"] for f in sort_results(files, "createdAsc")] == ["c", "b", "A"]


def test_remote_ordering_hint():
    assert order_by_for("modifiedAsc") == "modifiedTime desc"
    assert order_by_for("createdDesc") == "createdTime desc"
    assert order_by_for("nameDesc") == "name"


def test_search_files_lists_non_folders_in_folder():
    drive = FakeDirectoryService()
    drive.search_results = [found("z.pdf", "a.pdf")]

    results = search_files(drive, access_token="tok", folder_id="F1", filter="pdf")

    assert [r.name for r in results] == ["a.pdf", "z.pdf"]
    assert drive.searches[0]["query"] == (
        f"'F1' in parents and trashed=false and mimeType!='{FOLDER_MIME_TYPE}' and name contains 'pdf'"
    )


def test_search_files_error_yields_nothing():
    drive = FakeDirectoryService()
    drive.search_failure = http_error(500)
    assert search_files(drive, access_token="tok") == []


def test_results_without_id_are_skipped():
    drive = FakeDirectoryService()
    drive.search_results = [[{"name": "broken"}, {"id": "ok", "name": "fine"}]]

    folders = search_folders(drive, access_token="tok")
    assert [r.value for r in folders] == ["root", "ok"]

    drive.searches.clear()
    assert [r.value for r in search_files(drive, access_token="tok")] == ["ok"]
