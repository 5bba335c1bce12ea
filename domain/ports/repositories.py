from __future__ import annotations

from pathlib import Path
from typing import Protocol

from domain.models import Snapshot


class SnapshotRepository(Protocol):
    def load(self, path: Path) -> Snapshot: ...

    def load_raw(self, path: Path) -> bytes: ...

    def save(self, snapshot: Snapshot, path: Path) -> None: ...

    def save_text(self, text: str, path: Path) -> None: ...
