from __future__ import annotations

import re
from typing import Dict, List, Optional

from domain.models import Element, Placement, RelationshipKind, Snapshot

INDENT = "    "
DEFAULT_ARROW = "-->"

_IDENTIFIER_UNSAFE = re.compile(r"[^A-Za-z0-9_]")

RELATION_ARROWS: Dict[RelationshipKind, str] = {
    RelationshipKind.ASSOCIATION: "--",
    RelationshipKind.COMPOSITION: "*--",
    RelationshipKind.AGGREGATION: "o--",
    RelationshipKind.GENERALIZATION: "<|--",
    RelationshipKind.SATISFY: "..>",
    RelationshipKind.VERIFY: "..>",
    RelationshipKind.REFINE: "..>",
    RelationshipKind.TRACE: "..>",
}

# The arrow already says what these are, so no trailing label.
UNLABELLED_KINDS = frozenset(
    {
        RelationshipKind.ASSOCIATION,
        RelationshipKind.COMPOSITION,
        RelationshipKind.AGGREGATION,
        RelationshipKind.GENERALIZATION,
    }
)


def class_identifier(name: str) -> str:
    return _IDENTIFIER_UNSAFE.sub("_", name)


def member_lines(element: Element) -> List[str]:
    members: List[str] = []
    for line in element.description_lines():
        member = line.replace("{", "").replace("}", "").strip()
        if member:
            members.append(member)
    return members


def relation_arrow(label: str) -> str:
    kind = RelationshipKind.from_label(label)
    if kind is None:
        return DEFAULT_ARROW
    return RELATION_ARROWS.get(kind, DEFAULT_ARROW)


class MermaidClassDiagramCompiler:
    """Render a snapshot as a Mermaid ``classDiagram`` document.

    Identifiers come straight from element names, so two elements whose names
    sanitise to the same identifier end up merged by the consuming renderer.
    """

    def compile(self, snapshot: Snapshot) -> str:
        lines: List[str] = ["classDiagram"]
        for element in snapshot.elements.values():
            lines.extend(self._class_block(element))
        lines.extend(self._relations(snapshot))
        return "\n".join(lines) + "\n"

    def _class_block(self, element: Element) -> List[str]:
        identifier = class_identifier(element.name)
        block = [f"{INDENT}class {identifier} {{"]
        block.extend(f"{INDENT * 2}{member}" for member in member_lines(element))
        block.append(f"{INDENT}}}")
        block.append(f"{INDENT}<<{element.type.value.lower()}>> {identifier}")
        return block

    def _relations(self, snapshot: Snapshot) -> List[str]:
        placements = {placement.id: placement for placement in snapshot.placements}
        lines: List[str] = []
        for connection in snapshot.connections:
            source = self._resolve(snapshot, placements, connection.source)
            target = self._resolve(snapshot, placements, connection.target)
            if source is None or target is None:
                continue
            line = (
                f"{INDENT}{class_identifier(source.name)} "
                f"{relation_arrow(connection.label)} "
                f"{class_identifier(target.name)}"
            )
            if connection.kind not in UNLABELLED_KINDS and connection.label:
                line = f"{line} : {connection.label}"
            lines.append(line)
        return lines

    def _resolve(
        self,
        snapshot: Snapshot,
        placements: Dict[str, Placement],
        placement_id: str,
    ) -> Optional[Element]:
        placement = placements.get(placement_id)
        if placement is None:
            return None
        return snapshot.elements.get(placement.element_id)


def compile_class_diagram(snapshot: Snapshot) -> str:
    return MermaidClassDiagramCompiler().compile(snapshot)
