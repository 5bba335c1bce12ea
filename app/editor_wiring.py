from __future__ import annotations

import random

from adapters.ids.uuid_ids import uuid_id_generator
from app.config import AppSettings
from domain.models import Connection, Element, ElementType, Placement, Position, Snapshot
from domain.ports.ids import IdGenerator
from domain.services.graph_store import GraphStore


def example_snapshot() -> Snapshot:
    block = Element(
        id="elem-1",
        type=ElementType.BLOCK,
        name="Main System",
        description="power: Real\nmass: Real",
    )
    requirement = Element(
        id="elem-2",
        type=ElementType.REQUIREMENT,
        name="Performance Req",
        description="id: REQ-001\ntext: The system shall be fast.",
    )
    return Snapshot(
        placements=[
            Placement(id="node-1", element_id=block.id, position=Position(x=100, y=100)),
            Placement(id="node-2", element_id=requirement.id, position=Position(x=400, y=100)),
        ],
        connections=[Connection(id="edge-1", source="node-1", target="node-2", label="satisfy")],
        elements={block.id: block, requirement.id: requirement},
    )


def build_graph_store(
    settings: AppSettings,
    *,
    id_generator: IdGenerator | None = None,
    rng: random.Random | None = None,
) -> GraphStore:
    editor = settings.editor
    return GraphStore(
        id_generator or uuid_id_generator,
        example_snapshot() if editor.seed_example else None,
        spawn_region=editor.spawn_region(),
        rng=rng,
    )
