"""The mock scan source speaks the event format the engine ingests."""

import pytest
from fastapi.testclient import TestClient

from eyesonyou.policies.classification import classify
from eyesonyou.schemas.geometry import GeometryEvent
from sim.mock_scan.server import app as scan_app


@pytest.fixture(scope="module")
def scan():
    with TestClient(scan_app) as c:
        yield c


def test_room_is_reported_as_added_events(scan: TestClient):
    data = scan.get("/anchors/updates", params={"cursor": 0}).json()
    events = [GeometryEvent.model_validate(e) for e in data["events"]]
    assert data["cursor"] >= len(events) > 0
    cats = {e.anchor_id: classify(e.bounding_box()) for e in events if e.kind == "added"}
    assert cats["room_wall_front"] == "wall"
    assert cats["room_floor"] == "floor"
    assert cats["room_table"] == "table"
    assert cats["room_chair"] == "seat"


def test_cursor_only_returns_new_events(scan: TestClient):
    cursor = scan.get("/anchors/updates", params={"cursor": 0}).json()["cursor"]
    assert scan.get("/anchors/updates", params={"cursor": cursor}).json()["events"] == []

    assert scan.post("/scenario", json={"scenario": "wall_close"}).json()["ok"] is True
    data = scan.get("/anchors/updates", params={"cursor": cursor}).json()
    ev = GeometryEvent.model_validate(data["events"][0])
    assert ev.anchor_id == "scn_wall"
    assert ev.world_transform[2][3] == pytest.approx(-0.8)


def test_person_approach_and_clear(scan: TestClient):
    cursor = scan.get("/anchors/updates", params={"cursor": 0}).json()["cursor"]
    scan.post("/scenario", json={"scenario": "person_approach"})
    events = scan.get("/anchors/updates", params={"cursor": cursor}).json()["events"]
    assert any(e["anchor_id"] == "scn_person" for e in events)

    r = scan.post("/scenario", json={"scenario": "clear"}).json()
    assert "scn_person" in r["removed"]
    assert "scn_person" not in scan.get("/anchors").json()["anchors"]


def test_unknown_scenario(scan: TestClient):
    assert scan.post("/scenario", json={"scenario": "earthquake"}).status_code == 400
