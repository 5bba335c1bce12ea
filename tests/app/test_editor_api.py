from __future__ import annotations

import random
from collections.abc import Callable

import orjson
import pytest
from fastapi.testclient import TestClient

from app import web_main
from app.config import AppSettings
from app.web_main import create_app
from domain.services.graph_store import GraphStore
from domain.services.snapshot_codec import serialize_snapshot
from tests.helpers.diagram_fixtures import SequentialIds, vehicle_snapshot


@pytest.fixture
def client(app_settings: AppSettings) -> TestClient:
    store = GraphStore(SequentialIds(), rng=random.Random(5))
    return TestClient(create_app(app_settings, store=store))


@pytest.fixture
def vehicle_client(app_settings: AppSettings) -> TestClient:
    store = GraphStore(SequentialIds(), vehicle_snapshot())
    return TestClient(create_app(app_settings, store=store))


def _add(client: TestClient, element_type: str = "Block") -> dict:
    response = client.post("/api/elements", json={"type": element_type})
    assert response.status_code == 200
    return response.json()


def test_add_element_and_snapshot(client: TestClient) -> None:
    created = _add(client, "UseCase")

    assert created["element"]["name"] == "New UseCase"
    assert created["placement"]["elementId"] == created["element"]["id"]
    snapshot = client.get("/api/snapshot").json()
    assert list(snapshot["elements"]) == [created["element"]["id"]]
    assert snapshot["placements"][0]["id"] == created["placement"]["id"]


def test_add_element_rejects_unknown_type(client: TestClient) -> None:
    response = client.post("/api/elements", json={"type": "Widget"})

    assert response.status_code == 422


def test_update_element(client: TestClient) -> None:
    element_id = _add(client)["element"]["id"]

    response = client.patch(f"/api/elements/{element_id}", json={"description": "mass: Real"})

    assert response.json()["element"]["description"] == "mass: Real"
    assert response.json()["element"]["name"] == "New Block"
    missing = client.patch("/api/elements/nope", json={"name": "x"})
    assert missing.status_code == 200
    assert missing.json() == {"element": None}


def test_connect_relabel_and_remove(client: TestClient) -> None:
    a = _add(client)["placement"]["id"]
    b = _add(client)["placement"]["id"]

    connection = client.post("/api/connections", json={"source": a, "target": b}).json()[
        "connection"
    ]
    relabel = client.patch(
        f"/api/connections/{connection['id']}", json={"label": "Aggregation"}
    ).json()

    assert connection["label"] == ""
    assert relabel["style"]["markerStart"] == "diamond-open"
    assert client.delete(f"/api/connections/{connection['id']}").json() == {"removed": True}
    assert client.get("/api/snapshot").json()["connections"] == []


def test_connect_unknown_placement_is_404(client: TestClient) -> None:
    a = _add(client)["placement"]["id"]

    response = client.post("/api/connections", json={"source": a, "target": "node-x"})

    assert response.status_code == 404


def test_placement_changes_cascade(vehicle_client: TestClient) -> None:
    response = vehicle_client.post(
        "/api/placements/changes",
        json=[
            {"type": "position", "id": "n2", "position": {"x": 5, "y": 5}},
            {"type": "remove", "id": "n3"},
        ],
    )

    view = response.json()
    assert [node["id"] for node in view["nodes"]] == ["n1", "n2"]
    assert [edge["id"] for edge in view["edges"]] == ["c1"]
    assert view["nodes"][1]["position"] == {"x": 5.0, "y": 5.0}


def test_connection_changes_select(vehicle_client: TestClient) -> None:
    view = vehicle_client.post(
        "/api/connections/changes",
        json=[{"type": "select", "id": "c2", "selected": True}],
    ).json()

    assert view["selection"] == {"elementId": None, "connectionId": "c2"}
    assert [edge["selected"] for edge in view["edges"]] == [False, True]


def test_selection_endpoint(vehicle_client: TestClient) -> None:
    selected = vehicle_client.post("/api/selection", json={"connection_id": "c1"}).json()
    assert selected == {"elementId": None, "connectionId": "c1"}

    selected = vehicle_client.post("/api/selection", json={"element_id": "e2"}).json()
    assert selected == {"elementId": "e2", "connectionId": None}

    both = vehicle_client.post("/api/selection", json={"element_id": "e2", "connection_id": "c1"})
    assert both.status_code == 400


def test_view_reports_edge_styles(vehicle_client: TestClient) -> None:
    view = vehicle_client.get("/api/view").json()

    edges = {edge["id"]: edge for edge in view["edges"]}
    assert edges["c1"]["markerStart"] == "diamond-filled"
    assert edges["c2"]["strokeDasharray"] == "5,5"
    assert view["nodes"][0]["data"]["stereotype"] == "block"


def test_import_replaces_state(client: TestClient) -> None:
    _add(client)

    response = client.post(
        "/api/import",
        files={
            "file": ("diagram.json", serialize_snapshot(vehicle_snapshot()), "application/json")
        },
    )

    assert response.json()["elements"] == 3
    assert client.get("/api/snapshot").json() == vehicle_snapshot().to_payload()


@pytest.mark.parametrize(
    ("raw", "detail"),
    [
        (b"not json", "Invalid JSON file"),
        (b'{"placements": []}', "Invalid snapshot format"),
    ],
)
def test_import_rejections_keep_state(vehicle_client: TestClient, raw: bytes, detail: str) -> None:
    response = vehicle_client.post(
        "/api/import", files={"file": ("diagram.json", raw, "application/json")}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == detail
    assert vehicle_client.get("/api/snapshot").json() == vehicle_snapshot().to_payload()


def test_export_json_roundtrips(vehicle_client: TestClient) -> None:
    response = vehicle_client.get("/api/export/json", params={"download": True})

    assert response.headers["content-disposition"] == 'attachment; filename="diagram.json"'
    assert orjson.loads(response.content) == vehicle_snapshot().to_payload()


def test_export_diagram_text(vehicle_client: TestClient) -> None:
    response = vehicle_client.get("/api/export/diagram-text")

    assert response.headers["content-type"].startswith("text/plain")
    assert response.text.startswith("classDiagram\n")
    assert "    Vehicle *-- Engine\n" in response.text


def test_export_region_uses_padding(
    app_settings_factory: Callable[..., AppSettings],
) -> None:
    settings = app_settings_factory(export_padding=10.0)
    client = TestClient(create_app(settings, store=GraphStore(SequentialIds(), vehicle_snapshot())))

    payload = client.get("/api/export/region").json()

    assert payload["bounds"] == {"x": 0.0, "y": 0.0, "width": 450.0, "height": 350.0}
    assert payload["capture"]["width"] == 470.0
    assert payload["capture"]["height"] == 370.0
    assert payload["capture"]["transform"]["translateX"] == 10.0


def test_default_store_is_seeded(app_settings_factory: Callable[..., AppSettings]) -> None:
    client = TestClient(create_app(app_settings_factory(seed_example=True)))

    snapshot = client.get("/api/snapshot").json()

    assert snapshot["elements"]["elem-1"]["name"] == "Main System"
    assert snapshot["connections"][0]["label"] == "satisfy"


def test_module_app_serves_seeded_editor() -> None:
    client = TestClient(web_main.app)

    snapshot = client.get("/api/snapshot").json()

    assert web_main.app.title == "SysML Lite"
    assert "elem-1" in snapshot["elements"]


def test_update_element_can_clear_stereotype(client: TestClient) -> None:
    element_id = _add(client)["element"]["id"]

    tagged = client.patch(f"/api/elements/{element_id}", json={"stereotype": "subsystem"})
    assert tagged.json()["element"]["stereotype"] == "subsystem"

    cleared = client.patch(f"/api/elements/{element_id}", json={"stereotype": None})
    assert "stereotype" not in cleared.json()["element"]
    assert cleared.json()["element"]["name"] == "New Block"

    rejected = client.patch(f"/api/elements/{element_id}", json={"name": None})
    assert rejected.status_code == 422


def test_selecting_unknown_element_keeps_selection(vehicle_client: TestClient) -> None:
    vehicle_client.post("/api/selection", json={"connection_id": "c1"})

    selected = vehicle_client.post("/api/selection", json={"element_id": "ghost"}).json()

    assert selected == {"elementId": None, "connectionId": "c1"}
