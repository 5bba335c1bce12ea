from __future__ import annotations

from typing import Protocol


class IdGenerator(Protocol):
    def __call__(self) -> str: ...
