from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from adapters.filesystem.snapshot_repository import FileSystemSnapshotRepository
from domain.errors import SnapshotFormatError, SnapshotParseError
from domain.models import Snapshot
from domain.services.compile_class_diagram import MermaidClassDiagramCompiler
from domain.services.export_region import (
    DEFAULT_EXPORT_PADDING,
    bounding_box,
    build_capture_request,
)
from domain.services.snapshot_codec import serialize_snapshot

app = typer.Typer(no_args_is_help=True)
export_app = typer.Typer(no_args_is_help=True)
app.add_typer(export_app, name="export")
console = Console()


def _load_snapshot(repo: FileSystemSnapshotRepository, input_path: Path) -> Snapshot:
    if not input_path.exists():
        console.print(f"[red]File not found:[/] {input_path}")
        raise typer.Exit(code=1)
    try:
        return repo.load(input_path)
    except SnapshotParseError as exc:
        console.print(f"[red]Not a JSON file:[/] {exc}")
        raise typer.Exit(code=1) from exc
    except SnapshotFormatError as exc:
        console.print(f"[red]Invalid snapshot format:[/] {exc}")
        raise typer.Exit(code=1) from exc


@export_app.command("text")
def export_text(
    input_path: Path = typer.Argument(..., help="Snapshot JSON exported from the editor."),
    output_path: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the Mermaid class diagram here instead of stdout.",
    ),
) -> None:
    repo = FileSystemSnapshotRepository()
    snapshot = _load_snapshot(repo, input_path)
    text = MermaidClassDiagramCompiler().compile(snapshot)
    if output_path is None:
        typer.echo(text, nl=False)
        return
    repo.save_text(text, output_path)
    console.print(f"[green]Wrote[/] {output_path}")


@export_app.command("json")
def export_json(
    input_path: Path = typer.Argument(..., help="Snapshot JSON to normalise."),
    output_path: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the normalised snapshot here instead of stdout.",
    ),
) -> None:
    repo = FileSystemSnapshotRepository()
    snapshot = _load_snapshot(repo, input_path)
    if output_path is None:
        typer.echo(serialize_snapshot(snapshot).decode("utf-8"))
        return
    repo.save(snapshot, output_path)
    console.print(f"[green]Wrote[/] {output_path}")


@export_app.command("region")
def export_region(
    input_path: Path = typer.Argument(..., help="Snapshot JSON exported from the editor."),
    padding: float = typer.Option(DEFAULT_EXPORT_PADDING, help="Margin around the diagram."),
) -> None:
    snapshot = _load_snapshot(FileSystemSnapshotRepository(), input_path)
    rect = bounding_box(snapshot.placements)
    request = build_capture_request(rect, padding)
    console.print(
        f"bounds x={rect.x:g} y={rect.y:g} width={rect.width:g} height={rect.height:g}"
    )
    console.print(
        f"image {request.width:g}x{request.height:g} "
        f"translate=({request.translate_x:g}, {request.translate_y:g})"
    )


@app.command("validate")
def validate(input_path: Path = typer.Argument(..., help="Snapshot JSON to validate.")) -> None:
    snapshot = _load_snapshot(FileSystemSnapshotRepository(), input_path)
    placements = {placement.id for placement in snapshot.placements}
    dangling_elements = [
        placement.id
        for placement in snapshot.placements
        if placement.element_id not in snapshot.elements
    ]
    dangling_connections = [
        connection.id
        for connection in snapshot.connections
        if connection.source not in placements or connection.target not in placements
    ]
    for placement_id in dangling_elements:
        console.print(f"[yellow]Placement without element:[/] {placement_id}")
    for connection_id in dangling_connections:
        console.print(f"[yellow]Connection with missing endpoint:[/] {connection_id}")
    console.print(
        f"[green]Valid snapshot:[/] {input_path} "
        f"({len(snapshot.elements)} elements, {len(snapshot.placements)} placements, "
        f"{len(snapshot.connections)} connections)"
    )


if __name__ == "__main__":
    app()
