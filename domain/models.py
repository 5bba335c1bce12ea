from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ElementType(str, Enum):
    BLOCK = "Block"
    REQUIREMENT = "Requirement"
    ACTOR = "Actor"
    USE_CASE = "UseCase"
    ACTIVITY = "Activity"
    PACKAGE = "Package"
    DECISION = "Decision"
    START = "Start"
    END = "End"
    FORK = "Fork"
    JOIN = "Join"

    @property
    def is_control_flow(self) -> bool:
        return self in CONTROL_FLOW_TYPES


CONTROL_FLOW_TYPES = frozenset(
    {ElementType.START, ElementType.END, ElementType.FORK, ElementType.JOIN}
)


class RelationshipKind(str, Enum):
    DEPENDENCY = "Dependency"
    ASSOCIATION = "Association"
    COMPOSITION = "Composition"
    AGGREGATION = "Aggregation"
    GENERALIZATION = "Generalization"
    SATISFY = "satisfy"
    VERIFY = "verify"
    REFINE = "refine"
    TRACE = "trace"

    @classmethod
    def from_label(cls, label: str | None) -> Optional[RelationshipKind]:
        if not label:
            return None
        try:
            return cls(label)
        except ValueError:
            return None


class EndMarker(str, Enum):
    NONE = "none"
    ARROW = "arrow"
    TRIANGLE_HOLLOW = "triangle-hollow"


class StartMarker(str, Enum):
    NONE = "none"
    DIAMOND_OPEN = "diamond-open"
    DIAMOND_FILLED = "diamond-filled"


@dataclass(frozen=True)
class EdgeStyle:
    dash_pattern: str | None = None
    end_marker: EndMarker = EndMarker.ARROW
    start_marker: StartMarker = StartMarker.NONE
    animated: bool = False

    @property
    def dashed(self) -> bool:
        return self.dash_pattern is not None

    def to_dict(self) -> dict:
        return {
            "strokeDasharray": self.dash_pattern,
            "markerEnd": self.end_marker.value,
            "markerStart": self.start_marker.value,
            "animated": self.animated,
        }


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


DEFAULT_NODE_SIZE = Size(150.0, 100.0)

NODE_SIZE_HINTS: Dict[ElementType, Size] = {
    ElementType.START: Size(24.0, 24.0),
    ElementType.END: Size(32.0, 32.0),
    ElementType.DECISION: Size(48.0, 48.0),
    ElementType.FORK: Size(16.0, 96.0),
    ElementType.JOIN: Size(16.0, 96.0),
}


def default_size_for(element_type: ElementType) -> Size:
    return NODE_SIZE_HINTS.get(element_type, DEFAULT_NODE_SIZE)


def default_name_for(element_type: ElementType) -> str:
    if element_type.is_control_flow:
        return ""
    if element_type is ElementType.DECISION:
        return "?"
    return f"New {element_type.value}"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Element(_Record):
    id: str = Field(..., min_length=1)
    type: ElementType
    name: str = ""
    description: str = ""
    stereotype: Optional[str] = None

    def description_lines(self) -> List[str]:
        return [line for line in self.description.splitlines() if line.strip()]


class Position(_Record):
    x: float
    y: float

    def to_point(self) -> Point:
        return Point(self.x, self.y)


class Placement(_Record):
    id: str = Field(..., min_length=1)
    element_id: str = Field(..., alias="elementId")
    position: Position
    width: Optional[float] = None
    height: Optional[float] = None

    def size_hint(self) -> Optional[Size]:
        if self.width is None or self.height is None:
            return None
        return Size(self.width, self.height)


class Connection(_Record):
    id: str = Field(..., min_length=1)
    source: str
    target: str
    label: str = ""

    @property
    def kind(self) -> Optional[RelationshipKind]:
        return RelationshipKind.from_label(self.label)

    @property
    def style(self) -> EdgeStyle:
        from domain.services.edge_style import resolve_edge_style

        return resolve_edge_style(self.label)

    def touches(self, placement_id: str) -> bool:
        return placement_id in (self.source, self.target)


class Snapshot(_Record):
    placements: List[Placement] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)
    elements: Dict[str, Element] = Field(default_factory=dict)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


REQUIRED_SNAPSHOT_KEYS = ("placements", "connections", "elements")