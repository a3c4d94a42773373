"""Configuration models for tile-deck."""

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .fetcher import DEFAULT_EMBEDDED_ERROR_FIELDS, DEFAULT_FETCH_TIMEOUT_SECONDS

DEFAULT_INTERVAL_MS = 10 * 60 * 1000  # 10 minutes


class RefreshPolicy(BaseModel):
    """When a tile refetches. Fixed for the lifetime of a mounted tile."""

    interval_ms: int = Field(DEFAULT_INTERVAL_MS, gt=0)
    auto_refresh_enabled: bool = True
    refresh_on_focus: bool = True

    class Config:
        extra = 'forbid'
        frozen = True


class TileConfig(BaseModel):
    """Configuration for a single tile instance."""

    id: str = Field(pattern=r'^[a-z0-9-]+$')
    type: str  # e.g., "crypto-price"
    params: Dict[str, Any] = Field(default_factory=dict)
    refresh: RefreshPolicy = Field(default_factory=RefreshPolicy)
    source: Optional[str] = None  # Name shown in fault log entries

    class Config:
        extra = 'forbid'  # Reject unknown fields


class DashboardConfig(BaseModel):
    """Configuration for a dashboard: a set of independently refreshed tiles."""

    id: str = Field(pattern=r'^[a-z0-9-]+$')
    name: str
    description: Optional[str] = None
    tiles: List[TileConfig] = Field(min_length=1)

    class Config:
        extra = 'forbid'

    @field_validator('tiles')
    @classmethod
    def _unique_tile_ids(cls, tiles: List[TileConfig]) -> List[TileConfig]:
        seen = set()
        for tile in tiles:
            if tile.id in seen:
                raise ValueError(f"Duplicate tile id '{tile.id}'")
            seen.add(tile.id)
        return tiles


class EngineSettings(BaseModel):
    """Engine-wide settings: timeouts, storage location, fault log retention."""

    fetch_timeout_seconds: float = Field(DEFAULT_FETCH_TIMEOUT_SECONDS, gt=0)
    log_retention_minutes: int = Field(60, gt=0)
    max_log_entries: int = Field(1000, gt=0)
    storage_dir: Path = Path("data/cache")
    embedded_error_fields: List[str] = Field(default_factory=lambda: list(DEFAULT_EMBEDDED_ERROR_FIELDS))
    discard_superseded: bool = False
    http_timeout_seconds: float = Field(10.0, gt=0)
    http_max_attempts: int = Field(3, ge=1)

    class Config:
        extra = 'forbid'
