"""Configuration loader for the semantic index."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, PositiveFloat, PositiveInt, field_validator

from semantic_index.models import DuplicateHandling

CONFIG_PATH = Path("config/settings.yaml")


class EmbeddingSettings(BaseModel):
    provider: Literal["openai", "hash"] = "openai"
    model: str = "text-embedding-3-large"
    dimensions: Optional[PositiveInt] = None
    request_timeout: PositiveFloat = 30.0


class StoreSettings(BaseModel):
    duplicate_handling: DuplicateHandling = DuplicateHandling.UPDATE
    similarity: Literal["dot", "cosine"] = "dot"
    default_count: PositiveInt = 10
    dimensions: Optional[PositiveInt] = None

    model_config = {"validate_assignment": True}

    @field_validator("duplicate_handling", mode="before")
    @classmethod
    def normalise_policy(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class PersistenceSettings(BaseModel):
    snapshot_path: Optional[Path] = None
    log_path: Optional[Path] = None
    encoding: str = "utf-8"


class Settings(BaseModel):
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    persistence: PersistenceSettings = Field(default_factory=PersistenceSettings)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


@lru_cache(maxsize=4)
def get_settings(path: Optional[Path] = None) -> Settings:
    """Load and cache settings from YAML."""

    target_path = path or CONFIG_PATH
    raw = _load_yaml(target_path)
    return Settings.model_validate(raw)


__all__ = [
    "CONFIG_PATH",
    "EmbeddingSettings",
    "PersistenceSettings",
    "Settings",
    "StoreSettings",
    "get_settings",
]
