from __future__ import annotations

import os
import random
from collections.abc import Callable, Generator

import pytest

from app.config import AppSettings, EditorSettings
from domain.services.graph_store import GraphStore
from tests.helpers.diagram_fixtures import SequentialIds


def _clear_sysml_env() -> None:
    for key in list(os.environ):
        if key.startswith("SYSML_"):
            os.environ.pop(key, None)


_clear_sysml_env()


@pytest.fixture(autouse=True)
def clear_sysml_env() -> Generator[None, None, None]:
    _clear_sysml_env()
    yield
    _clear_sysml_env()


@pytest.fixture
def ids() -> SequentialIds:
    return SequentialIds()


@pytest.fixture
def store(ids: SequentialIds) -> GraphStore:
    return GraphStore(ids, rng=random.Random(7))


@pytest.fixture
def editor_settings() -> EditorSettings:
    return EditorSettings(
        title="Test Editor",
        export_padding=20.0,
        seed_example=False,
    )


@pytest.fixture
def app_settings(editor_settings: EditorSettings) -> AppSettings:
    return AppSettings(editor=editor_settings)


@pytest.fixture
def app_settings_factory(
    editor_settings: EditorSettings,
) -> Callable[..., AppSettings]:
    def _factory(**overrides: object) -> AppSettings:
        return AppSettings(editor=editor_settings.model_copy(update=overrides))

    return _factory
