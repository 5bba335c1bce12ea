from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Protocol

CaptureFilter = Callable[[Iterable[str]], bool]


@dataclass(frozen=True)
class CaptureRequest:
    width: float
    height: float
    translate_x: float
    translate_y: float
    scale: float = 1.0

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "transform": {
                "translateX": self.translate_x,
                "translateY": self.translate_y,
                "scale": self.scale,
            },
        }


class RenderSurface(Protocol):
    async def wait_until_stable(self) -> None: ...

    async def capture(self, request: CaptureRequest, include: CaptureFilter) -> bytes: ...
