from __future__ import annotations


class DiagramError(Exception):
    pass


class SnapshotParseError(DiagramError):
    """Import bytes are not valid JSON."""


class SnapshotFormatError(DiagramError):
    """Import JSON parsed but does not have the snapshot shape."""


class ImageExportError(DiagramError):
    """Rasterising the canvas failed."""
