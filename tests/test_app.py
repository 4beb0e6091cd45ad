import pytest

pytest.importorskip("flask")

import app as app_module
from catalog import catalog_to_dicts
from config import CFG

from conftest import SMALL_SOLUTIONS


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(app_module, "BASE_DIR", str(tmp_path))
    monkeypatch.setattr(CFG, "CROSS_CHECK", False)
    monkeypatch.setattr(CFG, "CATALOG_FILE", "")
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as c:
        yield c


def test_index_lists_builtin_tiles(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"girl-top" in resp.data


def test_json_solve_returns_all_arrangements(client, small_catalog):
    resp = client.post("/solve", json={"tiles": catalog_to_dicts(small_catalog)})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["ok"] is True
    assert body["count"] == 4
    got = {
        tuple((p["tile"], p["orientation"]) for p in s["placements"])
        for s in body["solutions"]
    }
    assert got == SMALL_SOLUTIONS


def test_json_solve_first_with_builtin_catalog(client):
    resp = client.post("/solve", json={"mode": "first"})
    body = resp.get_json()
    assert body["ok"] is True
    assert body["count"] == 1
    assert body["grid_size"] == 3


def test_json_solve_reports_bad_catalog(client):
    resp = client.post("/solve", json={"tiles": [["dragon", "none", "none", "none"]]})
    body = resp.get_json()
    assert body["ok"] is False
    assert body["reason"].startswith("Bad catalog")

    snap = client.get("/progress").get_json()
    assert snap["done"] is True
    assert snap["ok"] is False
    assert snap["status"] == "Error"


def test_form_solve_renders_result_and_writes_files(client, tmp_path, small_catalog):
    rows = catalog_to_dicts(small_catalog)
    form = {
        "id[]": [str(r["id"]) for r in rows],
        "top[]": [r["markings"][0] for r in rows],
        "right[]": [r["markings"][1] for r in rows],
        "bottom[]": [r["markings"][2] for r in rows],
        "left[]": [r["markings"][3] for r in rows],
        "mode": "all",
    }
    resp = client.post("/solve", data=form)
    assert resp.status_code == 200
    assert b"<svg" in resp.data
    assert (tmp_path / CFG.SOLUTIONS_OUT).exists()
    assert app_module.LAST_RESULT["count"] == 4

    latest = client.get("/result/latest")
    assert latest.status_code == 200

    download = client.get("/download/solutions")
    assert download.status_code == 200
    assert download.data.startswith(b"#1 1:")


def test_progress_endpoint_disables_caching(client):
    resp = client.get("/progress")
    assert resp.status_code == 200
    assert resp.headers["Cache-Control"].startswith("no-store")
    assert "status" in resp.get_json()


def test_analysis_reports_match_counts(client):
    body = client.get("/analysis").get_json()
    assert len(body["tiles"]) == 9
    assert set(body["match_counts"]) == {str(i) for i in range(1, 10)}


def test_json_run_replaces_previous_form_result(client, tmp_path, small_catalog):
    rows = catalog_to_dicts(small_catalog)
    form = {
        "top[]": [r["markings"][0] for r in rows],
        "right[]": [r["markings"][1] for r in rows],
        "bottom[]": [r["markings"][2] for r in rows],
        "left[]": [r["markings"][3] for r in rows],
    }
    client.post("/solve", data=form)
    assert app_module.LAST_RESULT["count"] == 4

    blank = [{"id": i, "markings": ["none"] * 4} for i in range(1, 5)]
    body = client.post("/solve", json={"tiles": blank}).get_json()
    assert body["ok"] is True
    assert body["count"] == 0

    snap = client.get("/progress").get_json()
    assert snap["result_url"] == "/result/latest"
    assert app_module.LAST_RESULT["count"] == 0
    assert app_module.LAST_RESULT["reason"] == "No arrangement exists"

    page = client.get("/result/latest")
    assert b"No arrangement exists" in page.data

    download = client.get("/download/solutions")
    assert download.data == b"No solution (No arrangement exists)\n"
