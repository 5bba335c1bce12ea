from __future__ import annotations

import random

import orjson
import pytest

from domain.errors import SnapshotFormatError, SnapshotParseError
from domain.models import ElementType
from domain.services.graph_store import GraphStore
from domain.services.snapshot_codec import deserialize_snapshot, serialize_snapshot
from tests.helpers.diagram_fixtures import SequentialIds, vehicle_snapshot


def _edited_store() -> GraphStore:
    store = GraphStore(SequentialIds(), rng=random.Random(3))
    block = store.add_element(ElementType.BLOCK)
    requirement = store.add_element(ElementType.REQUIREMENT)
    decision = store.add_element(ElementType.DECISION)
    store.update_element(block.element_id, name="Pump", description="flow: Real")
    first = store.connect(block.id, requirement.id)
    second = store.connect(requirement.id, decision.id)
    assert first and second
    store.update_connection_label(first.id, "satisfy")
    store.update_connection_label(second.id, "Generalization")
    return store


def test_roundtrip_of_edited_store() -> None:
    snapshot = _edited_store().snapshot()

    assert deserialize_snapshot(serialize_snapshot(snapshot)) == snapshot


def test_serialized_shape_uses_persisted_keys() -> None:
    payload = orjson.loads(serialize_snapshot(vehicle_snapshot()))

    assert set(payload) == {"placements", "connections", "elements"}
    assert payload["placements"][0] == {
        "id": "n1",
        "elementId": "e1",
        "position": {"x": 0.0, "y": 0.0},
        "width": 150.0,
        "height": 100.0,
    }
    assert payload["connections"][0] == {
        "id": "c1",
        "source": "n1",
        "target": "n2",
        "label": "Composition",
    }
    assert payload["elements"]["e3"]["type"] == "Requirement"
    assert "stereotype" not in payload["elements"]["e3"]


def test_serialization_is_pretty_and_deterministic() -> None:
    first = serialize_snapshot(vehicle_snapshot())
    second = serialize_snapshot(vehicle_snapshot())

    assert first == second
    assert b'\n  "placements"' in first


def test_not_json_is_parse_error() -> None:
    with pytest.raises(SnapshotParseError):
        deserialize_snapshot(b"not json")


def test_invalid_utf8_is_parse_error() -> None:
    with pytest.raises(SnapshotParseError):
        deserialize_snapshot(b"\xff\xfe{")


@pytest.mark.parametrize(
    "raw",
    [
        b'{"placements": []}',
        b'{"placements": [], "connections": []}',
        b"[]",
        b'"text"',
    ],
)
def test_missing_collections_is_format_error(raw: bytes) -> None:
    with pytest.raises(SnapshotFormatError):
        deserialize_snapshot(raw)


def test_malformed_records_are_format_errors() -> None:
    raw = b'{"placements": [{"id": "n1"}], "connections": [], "elements": {}}'

    with pytest.raises(SnapshotFormatError):
        deserialize_snapshot(raw)


def test_legacy_fields_are_ignored_on_import() -> None:
    raw = orjson.dumps(
        {
            "placements": [
                {
                    "id": "node-1",
                    "type": "sysmlNode",
                    "elementId": "elem-1",
                    "position": {"x": 100, "y": 100},
                }
            ],
            "connections": [
                {
                    "id": "edge-1",
                    "source": "node-1",
                    "target": "node-1",
                    "label": "dependency",
                    "animated": True,
                    "style": {"strokeDasharray": "5,5"},
                }
            ],
            "elements": {
                "elem-1": {
                    "id": "elem-1",
                    "type": "Block",
                    "name": "Main System",
                    "description": "",
                }
            },
        }
    )

    snapshot = deserialize_snapshot(raw)

    assert snapshot.connections[0].label == "dependency"
    assert snapshot.connections[0].style.dashed is False
    assert snapshot.placements[0].size_hint() is None


def test_element_key_must_match_record_id() -> None:
    raw = orjson.dumps(
        {
            "placements": [],
            "connections": [],
            "elements": {
                "a": {"id": "b", "type": "Block", "name": "First", "description": ""},
                "b": {"id": "b", "type": "Block", "name": "Second", "description": ""},
            },
        }
    )

    with pytest.raises(SnapshotFormatError, match="their ids: a$"):
        deserialize_snapshot(raw)
