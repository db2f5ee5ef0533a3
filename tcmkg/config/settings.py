"""tcmkg configuration via environment / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TCMKG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- K-means ---
    KMEANS_ITERATIONS: int = 10

    # --- Community detection ---
    COMMUNITY_MAX_PASSES: int = 20
    COMMUNITY_SEED: int | None = None

    # --- Centrality ---
    CENTRALITY_TOP_N: int = 5

    # --- Hierarchical defaults ---
    DEFAULT_DISTANCE: Literal["euclidean", "manhattan", "chebyshev", "lance"] = "euclidean"
    DEFAULT_LINKAGE: Literal["complete", "average", "centroid"] = "complete"

    # --- Graph loading ---
    MAX_NODES: int = 50_000
    INCLUDE_ORPHAN_NODES: bool = True

    # --- Logging ---
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # --- CORS ---
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator("DEFAULT_DISTANCE", "DEFAULT_LINKAGE", mode="before")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.lower() if isinstance(v, str) else v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


settings = Settings()
