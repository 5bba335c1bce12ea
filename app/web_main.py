from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, cast

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import ORJSONResponse, Response
from pydantic import BaseModel

from app.config import AppSettings, load_settings
from app.editor_wiring import build_graph_store
from domain.errors import SnapshotFormatError, SnapshotParseError
from domain.models import ElementType
from domain.services.compile_class_diagram import MermaidClassDiagramCompiler
from domain.services.export_region import bounding_box, build_capture_request
from domain.services.graph_store import ConnectionChange, GraphStore, PlacementChange
from domain.services.snapshot_codec import deserialize_snapshot, serialize_snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditorContext:
    settings: AppSettings
    store: GraphStore
    compiler: MermaidClassDiagramCompiler


class AddElementRequest(BaseModel):
    type: ElementType


class UpdateElementRequest(BaseModel):
    name: str = ""
    description: str = ""
    stereotype: Optional[str] = None


class ConnectRequest(BaseModel):
    source: str
    target: str


class RelabelRequest(BaseModel):
    label: str = ""


class SelectionRequest(BaseModel):
    element_id: Optional[str] = None
    connection_id: Optional[str] = None


def create_app(settings: AppSettings, store: GraphStore | None = None) -> FastAPI:
    app = FastAPI(title=settings.editor.title)
    context = EditorContext(
        settings=settings,
        store=store or build_graph_store(settings),
        compiler=MermaidClassDiagramCompiler(),
    )
    app.state.context = context

    @app.get("/api/snapshot")
    def api_snapshot(context: EditorContext = Depends(get_context)) -> ORJSONResponse:
        return ORJSONResponse(context.store.snapshot().to_payload())

    @app.get("/api/view")
    def api_view(context: EditorContext = Depends(get_context)) -> ORJSONResponse:
        return ORJSONResponse(build_view_payload(context.store))

    @app.post("/api/elements")
    def api_add_element(
        body: AddElementRequest,
        context: EditorContext = Depends(get_context),
    ) -> ORJSONResponse:
        placement = context.store.add_element(body.type)
        element = context.store.element_for(placement)
        return ORJSONResponse(
            {
                "placement": placement.model_dump(mode="json", by_alias=True, exclude_none=True),
                "element": element.model_dump(mode="json", exclude_none=True) if element else None,
            }
        )

    @app.patch("/api/elements/{element_id}")
    def api_update_element(
        element_id: str,
        body: UpdateElementRequest,
        context: EditorContext = Depends(get_context),
    ) -> ORJSONResponse:
        changes = body.model_dump(exclude_unset=True)
        element = context.store.update_element(element_id, **changes)
        return ORJSONResponse(
            {"element": element.model_dump(mode="json", exclude_none=True) if element else None}
        )

    @app.post("/api/placements/changes")
    def api_placement_changes(
        changes: list[PlacementChange],
        context: EditorContext = Depends(get_context),
    ) -> ORJSONResponse:
        context.store.apply_placement_changes(changes)
        return ORJSONResponse(build_view_payload(context.store))

    @app.post("/api/connections")
    def api_connect(
        body: ConnectRequest,
        context: EditorContext = Depends(get_context),
    ) -> ORJSONResponse:
        connection = context.store.connect(body.source, body.target)
        if connection is None:
            raise HTTPException(status_code=404, detail="Placement not found")
        return ORJSONResponse({"connection": connection.model_dump(mode="json")})

    @app.post("/api/connections/changes")
    def api_connection_changes(
        changes: list[ConnectionChange],
        context: EditorContext = Depends(get_context),
    ) -> ORJSONResponse:
        context.store.apply_connection_changes(changes)
        return ORJSONResponse(build_view_payload(context.store))

    @app.patch("/api/connections/{connection_id}")
    def api_relabel_connection(
        connection_id: str,
        body: RelabelRequest,
        context: EditorContext = Depends(get_context),
    ) -> ORJSONResponse:
        connection = context.store.update_connection_label(connection_id, body.label)
        if connection is None:
            return ORJSONResponse({"connection": None})
        return ORJSONResponse(
            {
                "connection": connection.model_dump(mode="json"),
                "style": connection.style.to_dict(),
            }
        )

    @app.delete("/api/connections/{connection_id}")
    def api_remove_connection(
        connection_id: str,
        context: EditorContext = Depends(get_context),
    ) -> ORJSONResponse:
        removed = context.store.remove_connection(connection_id)
        return ORJSONResponse({"removed": removed})

    @app.post("/api/selection")
    def api_select(
        body: SelectionRequest,
        context: EditorContext = Depends(get_context),
    ) -> ORJSONResponse:
        if body.element_id and body.connection_id:
            raise HTTPException(
                status_code=400, detail="Select either an element or a connection"
            )
        if body.connection_id:
            context.store.select_connection(body.connection_id)
        else:
            context.store.select_element(body.element_id)
        return ORJSONResponse(selection_payload(context.store))

    @app.post("/api/import")
    async def api_import(
        file: UploadFile = File(...),
        context: EditorContext = Depends(get_context),
    ) -> ORJSONResponse:
        raw_bytes = await file.read()
        try:
            snapshot = deserialize_snapshot(raw_bytes)
        except SnapshotParseError as exc:
            logger.info("Rejected import %s: %s", file.filename, exc)
            raise HTTPException(status_code=400, detail="Invalid JSON file") from exc
        except SnapshotFormatError as exc:
            logger.info("Rejected import %s: %s", file.filename, exc)
            raise HTTPException(status_code=400, detail="Invalid snapshot format") from exc
        context.store.load_snapshot(snapshot)
        return ORJSONResponse(
            {
                "status": "ok",
                "elements": len(snapshot.elements),
                "placements": len(snapshot.placements),
                "connections": len(snapshot.connections),
            }
        )

    @app.get("/api/export/json")
    def api_export_json(
        download: bool = Query(default=False),
        context: EditorContext = Depends(get_context),
    ) -> Response:
        payload = serialize_snapshot(context.store.snapshot())
        headers = {}
        if download:
            headers["Content-Disposition"] = 'attachment; filename="diagram.json"'
        return Response(content=payload, media_type="application/json", headers=headers)

    @app.get("/api/export/diagram-text")
    def api_export_diagram_text(
        download: bool = Query(default=False),
        context: EditorContext = Depends(get_context),
    ) -> Response:
        text = context.compiler.compile(context.store.snapshot())
        headers = {}
        if download:
            headers["Content-Disposition"] = 'attachment; filename="diagram.mmd"'
        return Response(
            content=text.encode("utf-8"),
            media_type="text/plain; charset=utf-8",
            headers=headers,
        )

    @app.get("/api/export/region")
    def api_export_region(context: EditorContext = Depends(get_context)) -> ORJSONResponse:
        store = context.store
        rect = bounding_box(store.snapshot().placements, store.measured_sizes)
        request = build_capture_request(rect, context.settings.editor.export_padding)
        return ORJSONResponse({"bounds": rect.to_dict(), "capture": request.to_dict()})

    return app


def get_context(request: Request) -> EditorContext:
    return cast(EditorContext, request.app.state.context)


def selection_payload(store: GraphStore) -> dict[str, Any]:
    return {
        "elementId": store.selected_element_id,
        "connectionId": store.selected_connection_id,
    }


def build_view_payload(store: GraphStore) -> dict[str, Any]:
    return {
        "nodes": [view.to_dict() for view in store.node_views()],
        "edges": [view.to_dict() for view in store.edge_views()],
        "selection": selection_payload(store),
    }


app = create_app(load_settings())
