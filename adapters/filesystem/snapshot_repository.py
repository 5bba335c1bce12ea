from __future__ import annotations

from pathlib import Path

from filelock import FileLock

from adapters.filesystem.json_utils import write_bytes_atomic
from domain.models import Snapshot
from domain.ports.repositories import SnapshotRepository
from domain.services.snapshot_codec import deserialize_snapshot, serialize_snapshot


class FileSystemSnapshotRepository(SnapshotRepository):
    def load(self, path: Path) -> Snapshot:
        return deserialize_snapshot(self.load_raw(path))

    def load_raw(self, path: Path) -> bytes:
        return path.read_bytes()

    def save(self, snapshot: Snapshot, path: Path) -> None:
        self._write(path, serialize_snapshot(snapshot))

    def save_text(self, text: str, path: Path) -> None:
        self._write(path, text.encode("utf-8"))

    def _write(self, path: Path, payload: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = path.with_suffix(f"{path.suffix}.lock")
        with FileLock(str(lock_path)):
            write_bytes_atomic(path, payload)
