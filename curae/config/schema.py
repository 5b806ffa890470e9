# ==============================
# Config Schemas (Pydantic)
# ==============================
"""
Pydantic settings models for the retrieval engine.

Notes:
- No env reads here. No file IO here. Pure types + defaults.
- loader.py builds a single Settings object with precedence merging.
- Defaults reproduce the reference ranking behaviour; override only for experiments.

Precedence (implemented in loader.py):
env > .env > configs/*.yaml > defaults
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ==============================
# App Settings
# ==============================


class PathsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    repo_root: str = Field(default=".", description="Repo root (relative or absolute)")
    configs_dir: str = Field(default="configs", description="Configs directory")
    storage_dir: str = Field(default="storage", description="Runtime storage directory")


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    env: str = Field(default="local", description="Environment name (local/stage/prod)")
    debug: bool = Field(default=False)
    paths: PathsConfig = Field(default_factory=PathsConfig)


# ==============================
# Store Settings
# ==============================


class StoreConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    backend: Literal["sqlite", "memory"] = Field(default="sqlite")
    db_path: Optional[str] = Field(default=None, description="SQLite file; defaults to <storage_dir>/vectors/curae.sqlite")
    snapshot_key: str = Field(default="curae_vector_store")
    snapshot_version: str = Field(default="1.0", description="Snapshots with any other version are discarded on load")

    @field_validator("snapshot_version", mode="before")
    @classmethod
    def _version_as_text(cls, value):
        # env/yaml overrides like 2.0 arrive as floats
        return str(value) if isinstance(value, (int, float)) else value


# ==============================
# Ingestion Settings
# ==============================


class IngestionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id_prefix: str = Field(default="product_")
    marketplace_url_template: str = Field(default="/marketplace/product/{id}")
    discovery_url_template: str = Field(default="/product-detail/{id}")
    catalog_path: Optional[str] = Field(default=None, description="Catalog file (JSON or YAML) for FileCatalog")


# ==============================
# Ranking Settings
# ==============================


class RankingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    similarity_weight: float = Field(default=0.6)
    attribute_weight: float = Field(default=0.4)
    survey_weight: float = Field(default=0.7, description="Survey share when blending with a free-text query")
    query_weight: float = Field(default=0.3)
    candidate_multiplier: int = Field(default=3, ge=1, description="Over-fetch factor before re-ranking")
    default_limit: int = Field(default=10, ge=1)
    default_min_similarity: float = Field(default=0.05)
    routine_categories: List[str] = Field(
        default_factory=lambda: ["cleanser", "serum", "moisturizer", "sunscreen"]
    )
    routine_limit: int = Field(default=2, ge=1)
    routine_workers: int = Field(default=4, ge=1)

    @model_validator(mode="after")
    def _check_blend(self) -> "RankingConfig":
        if self.survey_weight < 0 or self.query_weight < 0:
            raise ValueError("blend weights must be non-negative")
        return self


# ==============================
# Chat Settings
# ==============================


class ChatConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    marketplace_name: str = Field(default="Lorem Curae")
    default_limit: int = Field(default=4, ge=1)


# ==============================
# Logging Settings
# ==============================


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    level: str = Field(default="INFO")
    console: bool = Field(default=True)


# ==============================
# Top-Level Settings
# ==============================


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    app: AppConfig = Field(default_factory=AppConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def repo_root_path(self) -> Path:
        return Path(self.app.paths.repo_root).expanduser().resolve()

    def resolve_path(self, path_str: str) -> Path:
        path = Path(path_str).expanduser()
        return path if path.is_absolute() else (self.repo_root_path() / path)
