from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import orjson
from pydantic import ValidationError

from domain.errors import SnapshotFormatError, SnapshotParseError
from domain.models import REQUIRED_SNAPSHOT_KEYS, Snapshot

logger = logging.getLogger(__name__)


def serialize_snapshot(snapshot: Snapshot) -> bytes:
    return orjson.dumps(snapshot.to_payload(), option=orjson.OPT_INDENT_2)


def deserialize_snapshot(data: bytes | str) -> Snapshot:
    try:
        payload = orjson.loads(data)
    except orjson.JSONDecodeError as exc:
        msg = f"Snapshot is not valid JSON: {exc}"
        raise SnapshotParseError(msg) from exc
    snapshot = snapshot_from_payload(payload)
    logger.debug(
        "Decoded snapshot with %d elements and %d connections",
        len(snapshot.elements),
        len(snapshot.connections),
    )
    return snapshot


def snapshot_from_payload(payload: Mapping[str, Any]) -> Snapshot:
    if not isinstance(payload, Mapping):
        msg = "Snapshot must be a JSON object"
        raise SnapshotFormatError(msg)
    missing = [key for key in REQUIRED_SNAPSHOT_KEYS if key not in payload]
    if missing:
        msg = f"Snapshot is missing required collections: {', '.join(missing)}"
        raise SnapshotFormatError(msg)
    try:
        snapshot = Snapshot.model_validate(dict(payload))
    except ValidationError as exc:
        msg = f"Snapshot does not match the expected shape: {exc.error_count()} error(s)"
        raise SnapshotFormatError(msg) from exc
    # Element ids must be unique, so each map key has to name its own record.
    mismatched = sorted(key for key, element in snapshot.elements.items() if key != element.id)
    if mismatched:
        msg = f"Element keys do not match their ids: {', '.join(mismatched)}"
        raise SnapshotFormatError(msg)
    return snapshot
