from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Optional

from domain.errors import ImageExportError
from domain.models import DEFAULT_NODE_SIZE, Placement, Rect, Size
from domain.ports.rendering import CaptureRequest, RenderSurface

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_PADDING = 20.0
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# Marker classes the renderer puts on overlay chrome that must not end up in the image.
CHROME_MARKERS = frozenset({"minimap", "controls"})
_CHROME_PREFIX = "react-flow__"


def placement_size(
    placement: Placement,
    measured: Optional[Mapping[str, Size]] = None,
    default_size: Size = DEFAULT_NODE_SIZE,
) -> Size:
    if measured and placement.id in measured:
        return measured[placement.id]
    hint = placement.size_hint()
    if hint is not None:
        return hint
    return default_size


def bounding_box(
    placements: Iterable[Placement],
    measured: Optional[Mapping[str, Size]] = None,
    default_size: Size = DEFAULT_NODE_SIZE,
) -> Rect:
    min_x = float("inf")
    min_y = float("inf")
    max_x = float("-inf")
    max_y = float("-inf")
    for placement in placements:
        size = placement_size(placement, measured, default_size)
        x1 = placement.position.x
        y1 = placement.position.y
        min_x = min(min_x, x1)
        min_y = min(min_y, y1)
        max_x = max(max_x, x1 + size.width)
        max_y = max(max_y, y1 + size.height)
    if min_x == float("inf"):
        return Rect(0.0, 0.0, 0.0, 0.0)
    return Rect(min_x, min_y, max_x - min_x, max_y - min_y)


def build_capture_request(rect: Rect, padding: float = DEFAULT_EXPORT_PADDING) -> CaptureRequest:
    return CaptureRequest(
        width=rect.width + padding * 2,
        height=rect.height + padding * 2,
        translate_x=-rect.x + padding,
        translate_y=-rect.y + padding,
    )


def is_capturable(markers: Iterable[str]) -> bool:
    for marker in markers:
        name = marker.removeprefix(_CHROME_PREFIX)
        if name in CHROME_MARKERS:
            return False
    return True


async def export_image(
    surface: RenderSurface,
    placements: Sequence[Placement],
    measured: Optional[Mapping[str, Size]] = None,
    padding: float = DEFAULT_EXPORT_PADDING,
) -> bytes:
    request = build_capture_request(bounding_box(placements, measured), padding)
    try:
        await surface.wait_until_stable()
        image = await surface.capture(request, is_capturable)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Image capture failed")
        msg = f"Image capture failed: {exc}"
        raise ImageExportError(msg) from exc
    if not image.startswith(PNG_SIGNATURE):
        msg = "Image capture did not produce PNG data"
        raise ImageExportError(msg)
    logger.info("Captured %.0fx%.0f image", request.width, request.height)
    return image
