from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any, Dict, Optional

from domain.models import Element, ElementType, default_name_for
from domain.ports.ids import IdGenerator

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "description", "stereotype"})


class ElementTable:
    def __init__(
        self,
        id_generator: IdGenerator,
        elements: Mapping[str, Element] | None = None,
    ) -> None:
        self._id_generator = id_generator
        self._elements: Dict[str, Element] = dict(elements or {})

    def __contains__(self, element_id: object) -> bool:
        return element_id in self._elements

    def __iter__(self) -> Iterator[Element]:
        return iter(self._elements.values())

    def __len__(self) -> int:
        return len(self._elements)

    def get(self, element_id: str) -> Optional[Element]:
        return self._elements.get(element_id)

    def create(self, element_type: ElementType) -> Element:
        element_id = self._id_generator()
        if element_id in self._elements:
            msg = f"Id generator returned a duplicate id: {element_id}"
            raise ValueError(msg)
        element = Element(
            id=element_id,
            type=element_type,
            name=default_name_for(element_type),
            description="",
        )
        self._elements[element_id] = element
        return element

    def update(self, element_id: str, **changes: Any) -> Optional[Element]:
        current = self._elements.get(element_id)
        if current is None:
            logger.debug("Ignoring update for unknown element %s", element_id)
            return None
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            msg = f"Element fields are not updatable: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        updated = Element.model_validate({**current.model_dump(), **changes})
        self._elements[element_id] = updated
        return updated

    def reset(self, elements: Mapping[str, Element]) -> None:
        self._elements = dict(elements)

    def to_dict(self) -> Dict[str, Element]:
        return dict(self._elements)
