from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from domain.services.graph_store import SpawnRegion

DEFAULT_CONFIG_PATH = Path("config/editor.yaml")


class EditorSettings(BaseModel):
    title: str = "SysML Lite"
    spawn_x: float = 50.0
    spawn_y: float = 50.0
    spawn_width: float = Field(default=400.0, gt=0)
    spawn_height: float = Field(default=400.0, gt=0)
    export_padding: float = Field(default=20.0, ge=0)
    seed_example: bool = True

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: object) -> str:
        text = str(value or "").strip()
        return text or "SysML Lite"

    def spawn_region(self) -> SpawnRegion:
        return SpawnRegion(
            x=self.spawn_x,
            y=self.spawn_y,
            width=self.spawn_width,
            height=self.spawn_height,
        )


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SYSML_", env_nested_delimiter="__")

    editor: EditorSettings = EditorSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("SYSML_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
