from __future__ import annotations

from dataclasses import replace
from typing import Dict

from domain.models import EdgeStyle, EndMarker, RelationshipKind, StartMarker

DASH_PATTERN = "5,5"

BASE_STYLE = EdgeStyle()

_DASHED_ARROW = replace(BASE_STYLE, dash_pattern=DASH_PATTERN)

EDGE_STYLES: Dict[RelationshipKind, EdgeStyle] = {
    RelationshipKind.ASSOCIATION: replace(BASE_STYLE, end_marker=EndMarker.NONE),
    RelationshipKind.DEPENDENCY: _DASHED_ARROW,
    RelationshipKind.SATISFY: _DASHED_ARROW,
    RelationshipKind.VERIFY: _DASHED_ARROW,
    RelationshipKind.REFINE: _DASHED_ARROW,
    RelationshipKind.TRACE: _DASHED_ARROW,
    RelationshipKind.COMPOSITION: replace(
        BASE_STYLE, end_marker=EndMarker.NONE, start_marker=StartMarker.DIAMOND_FILLED
    ),
    RelationshipKind.AGGREGATION: replace(
        BASE_STYLE, end_marker=EndMarker.NONE, start_marker=StartMarker.DIAMOND_OPEN
    ),
    RelationshipKind.GENERALIZATION: replace(BASE_STYLE, end_marker=EndMarker.TRIANGLE_HOLLOW),
}


def resolve_edge_style(label: str | RelationshipKind | None) -> EdgeStyle:
    """Map a relationship label to the attributes the renderer draws.

    The result is always built from ``BASE_STYLE``; nothing carries over from
    whatever label the connection had before. Empty, legacy or unknown labels
    get the default solid arrow.
    """
    kind = label if isinstance(label, RelationshipKind) else RelationshipKind.from_label(label)
    if kind is None:
        return BASE_STYLE
    return EDGE_STYLES.get(kind, BASE_STYLE)
