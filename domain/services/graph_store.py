from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel

from domain.models import (
    Connection,
    EdgeStyle,
    Element,
    ElementType,
    Placement,
    Position,
    Size,
    Snapshot,
    default_size_for,
)
from domain.ports.ids import IdGenerator
from domain.services.element_table import ElementTable
from domain.services.snapshot_codec import snapshot_from_payload

logger = logging.getLogger(__name__)

MISSING_LABEL = "Missing Data"
EMPTY_DESCRIPTION = "No description"

Listener = Callable[[Snapshot], None]


@dataclass(frozen=True)
class SpawnRegion:
    x: float = 50.0
    y: float = 50.0
    width: float = 400.0
    height: float = 400.0

    def sample(self, rng: random.Random) -> Position:
        return Position(
            x=self.x + rng.random() * self.width,
            y=self.y + rng.random() * self.height,
        )


class PlacementChange(BaseModel):
    type: Literal["position", "dimensions", "remove", "select"]
    id: str
    position: Optional[Position] = None
    width: Optional[float] = None
    height: Optional[float] = None
    selected: Optional[bool] = None


class ConnectionChange(BaseModel):
    type: Literal["remove", "select"]
    id: str
    selected: Optional[bool] = None


@dataclass(frozen=True)
class NodeView:
    id: str
    element_id: str
    position: Position
    width: Optional[float]
    height: Optional[float]
    element_type: Optional[ElementType]
    label: str
    stereotype: str
    description: str
    missing: bool
    selected: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "position": {"x": self.position.x, "y": self.position.y},
            "width": self.width,
            "height": self.height,
            "selected": self.selected,
            "data": {
                "elementId": self.element_id,
                "type": self.element_type.value if self.element_type else None,
                "label": self.label,
                "stereotype": self.stereotype,
                "description": self.description,
                "missing": self.missing,
            },
        }


@dataclass(frozen=True)
class EdgeView:
    id: str
    source: str
    target: str
    label: str
    style: EdgeStyle
    selected: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "label": self.label,
            "selected": self.selected,
            **self.style.to_dict(),
        }


class DiagramModel:
    """Replaceable data envelope: elements, placements, connections."""

    def __init__(self, id_generator: IdGenerator, snapshot: Snapshot | None = None) -> None:
        self.elements = ElementTable(id_generator)
        self.placements: Dict[str, Placement] = {}
        self.connections: Dict[str, Connection] = {}
        self.measured: Dict[str, Size] = {}
        if snapshot is not None:
            self.replace(snapshot)

    def replace(self, snapshot: Snapshot) -> None:
        self.elements.reset(snapshot.elements)
        self.placements = {placement.id: placement for placement in snapshot.placements}
        self.connections = {connection.id: connection for connection in snapshot.connections}
        self.measured = {}

    def snapshot(self) -> Snapshot:
        return Snapshot(
            placements=list(self.placements.values()),
            connections=list(self.connections.values()),
            elements=self.elements.to_dict(),
        )


class GraphStore:
    def __init__(
        self,
        id_generator: IdGenerator,
        snapshot: Snapshot | None = None,
        *,
        spawn_region: SpawnRegion | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._id_generator = id_generator
        self._model = DiagramModel(id_generator, snapshot)
        self._spawn_region = spawn_region or SpawnRegion()
        self._rng = rng or random.Random()
        self._listeners: List[Listener] = []
        self._selected_element_id: Optional[str] = None
        self._selected_connection_id: Optional[str] = None

    @property
    def selected_element_id(self) -> Optional[str]:
        return self._selected_element_id

    @property
    def selected_connection_id(self) -> Optional[str]:
        return self._selected_connection_id

    @property
    def measured_sizes(self) -> Dict[str, Size]:
        return dict(self._model.measured)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> Snapshot:
        return self._model.snapshot()

    def get_element(self, element_id: str) -> Optional[Element]:
        return self._model.elements.get(element_id)

    def get_placement(self, placement_id: str) -> Optional[Placement]:
        return self._model.placements.get(placement_id)

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        return self._model.connections.get(connection_id)

    def element_for(self, placement: Placement) -> Optional[Element]:
        return self._model.elements.get(placement.element_id)

    # --- elements / placements ---

    def add_element(self, element_type: ElementType) -> Placement:
        element = self._model.elements.create(element_type)
        size = default_size_for(element_type)
        placement = Placement(
            id=f"node-{element.id}",
            element_id=element.id,
            position=self._spawn_region.sample(self._rng),
            width=size.width,
            height=size.height,
        )
        self._model.placements[placement.id] = placement
        self._notify()
        return placement

    def update_element(self, element_id: str, **changes: Any) -> Optional[Element]:
        updated = self._model.elements.update(element_id, **changes)
        if updated is not None:
            self._notify()
        return updated

    def apply_placement_changes(self, changes: Iterable[PlacementChange]) -> None:
        changed = False
        for change in changes:
            placement = self._model.placements.get(change.id)
            if placement is None:
                logger.debug("Ignoring %s change for unknown placement %s", change.type, change.id)
                continue
            if change.type == "position":
                if change.position is None:
                    continue
                self._model.placements[placement.id] = placement.model_copy(
                    update={"position": change.position}
                )
                changed = True
            elif change.type == "dimensions":
                if change.width is None or change.height is None:
                    continue
                self._model.measured[placement.id] = Size(change.width, change.height)
                changed = True
            elif change.type == "remove":
                self._remove_placement(placement)
                changed = True
            elif change.type == "select":
                if change.selected:
                    if placement.element_id not in self._model.elements:
                        continue
                    self._select(element_id=placement.element_id)
                elif self._selected_element_id == placement.element_id:
                    self._select()
                changed = True
        if changed:
            self._notify()

    def _remove_placement(self, placement: Placement) -> None:
        del self._model.placements[placement.id]
        self._model.measured.pop(placement.id, None)
        dangling = [
            connection_id
            for connection_id, connection in self._model.connections.items()
            if connection.touches(placement.id)
        ]
        for connection_id in dangling:
            del self._model.connections[connection_id]
        if self._selected_connection_id in dangling:
            self._selected_connection_id = None
        still_placed = any(
            other.element_id == placement.element_id for other in self._model.placements.values()
        )
        if self._selected_element_id == placement.element_id and not still_placed:
            self._selected_element_id = None

    # --- connections ---

    def connect(self, source: str, target: str) -> Optional[Connection]:
        placements = self._model.placements
        if source not in placements or target not in placements:
            logger.debug("Ignoring connection %s -> %s with unknown endpoint", source, target)
            return None
        for existing in self._model.connections.values():
            if existing.source == source and existing.target == target:
                return existing
        connection = Connection(id=f"edge-{self._id_generator()}", source=source, target=target)
        self._model.connections[connection.id] = connection
        self._notify()
        return connection

    def update_connection_label(self, connection_id: str, label: str) -> Optional[Connection]:
        connection = self._model.connections.get(connection_id)
        if connection is None:
            logger.debug("Ignoring relabel of unknown connection %s", connection_id)
            return None
        updated = connection.model_copy(update={"label": label})
        self._model.connections[connection_id] = updated
        self._notify()
        return updated

    def remove_connection(self, connection_id: str) -> bool:
        if self._model.connections.pop(connection_id, None) is None:
            return False
        if self._selected_connection_id == connection_id:
            self._selected_connection_id = None
        self._notify()
        return True

    def apply_connection_changes(self, changes: Iterable[ConnectionChange]) -> None:
        changed = False
        for change in changes:
            if change.id not in self._model.connections:
                logger.debug("Ignoring %s change for unknown connection %s", change.type, change.id)
                continue
            if change.type == "remove":
                del self._model.connections[change.id]
                if self._selected_connection_id == change.id:
                    self._selected_connection_id = None
            elif change.selected:
                self._select(connection_id=change.id)
            elif self._selected_connection_id == change.id:
                self._select()
            changed = True
        if changed:
            self._notify()

    # --- selection ---

    def select_element(self, element_id: Optional[str]) -> None:
        if element_id is not None and element_id not in self._model.elements:
            logger.debug("Ignoring selection of unknown element %s", element_id)
            return
        self._select(element_id=element_id)
        self._notify()

    def select_connection(self, connection_id: Optional[str]) -> None:
        if connection_id is not None and connection_id not in self._model.connections:
            logger.debug("Ignoring selection of unknown connection %s", connection_id)
            return
        self._select(connection_id=connection_id)
        self._notify()

    def _select(
        self,
        *,
        element_id: Optional[str] = None,
        connection_id: Optional[str] = None,
    ) -> None:
        self._selected_element_id = element_id
        self._selected_connection_id = None if element_id else connection_id

    # --- bulk load ---

    def load_snapshot(self, snapshot: Snapshot | Mapping[str, Any]) -> None:
        if not isinstance(snapshot, Snapshot):
            snapshot = snapshot_from_payload(snapshot)
        self._model.replace(snapshot)
        self._select()
        logger.info(
            "Loaded snapshot with %d elements, %d placements, %d connections",
            len(snapshot.elements),
            len(snapshot.placements),
            len(snapshot.connections),
        )
        self._notify()

    # --- renderer feed ---

    def node_views(self) -> List[NodeView]:
        views: List[NodeView] = []
        for placement in self._model.placements.values():
            element = self.element_for(placement)
            selected = (
                element is not None and self._selected_element_id == placement.element_id
            )
            if element is None:
                views.append(
                    NodeView(
                        id=placement.id,
                        element_id=placement.element_id,
                        position=placement.position,
                        width=placement.width,
                        height=placement.height,
                        element_type=None,
                        label=MISSING_LABEL,
                        stereotype="",
                        description="",
                        missing=True,
                        selected=False,
                    )
                )
                continue
            views.append(
                NodeView(
                    id=placement.id,
                    element_id=element.id,
                    position=placement.position,
                    width=placement.width,
                    height=placement.height,
                    element_type=element.type,
                    label=element.name,
                    stereotype=element.stereotype or element.type.value.lower(),
                    description=element.description or EMPTY_DESCRIPTION,
                    missing=False,
                    selected=selected,
                )
            )
        return views

    def edge_views(self) -> List[EdgeView]:
        return [
            EdgeView(
                id=connection.id,
                source=connection.source,
                target=connection.target,
                label=connection.label,
                style=connection.style,
                selected=self._selected_connection_id == connection.id,
            )
            for connection in self._model.connections.values()
        ]

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self._model.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
