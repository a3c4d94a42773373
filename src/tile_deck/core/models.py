"""Data models shared by the cache, fetch coordinator and status resolver."""

from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, model_validator

DomainRecord = Dict[str, Any]


class TileStatus(str, Enum):
    """Display state of a tile."""

    LOADING = "loading"
    SUCCESS = "success"
    STALE = "stale"
    ERROR = "error"


class LogLevel(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class CacheMeta(BaseModel):
    """Bookkeeping fields of a cache entry."""

    last_request_at: int
    last_request_successful: bool
    last_success_at: Optional[int] = None

    class Config:
        frozen = True


class CacheEntry(BaseModel):
    """Persisted state of one tile: last good record plus request bookkeeping.

    Serialized with the legacy storage names (``data``, ``lastDataRequest``, ...)
    when dumped ``by_alias``.
    """

    record: Optional[DomainRecord] = Field(None, alias="data")
    last_request_at: int = Field(alias="lastDataRequest")
    last_request_successful: bool = Field(alias="lastDataRequestSuccessful")
    last_success_at: Optional[int] = Field(None, alias="lastSuccessfulDataRequest")

    class Config:
        frozen = True
        populate_by_name = True

    @model_validator(mode="after")
    def _check_bookkeeping(self) -> "CacheEntry":
        if (self.record is None) != (self.last_success_at is None):
            raise ValueError("record and last_success_at must both be set or both be null")
        if self.last_success_at is not None and self.last_success_at > self.last_request_at:
            raise ValueError("last_success_at cannot be later than last_request_at")
        return self

    @property
    def meta(self) -> CacheMeta:
        return CacheMeta(
            last_request_at=self.last_request_at,
            last_request_successful=self.last_request_successful,
            last_success_at=self.last_success_at,
        )

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FetchResult(BaseModel):
    """Outcome of one fetch attempt, as handed to the UI layer."""

    record: Optional[DomainRecord] = None
    meta: CacheMeta
    superseded: bool = False

    class Config:
        frozen = True

    @classmethod
    def from_entry(cls, entry: CacheEntry, superseded: bool = False) -> "FetchResult":
        return cls(record=entry.record, meta=entry.meta, superseded=superseded)

    @property
    def succeeded(self) -> bool:
        return self.meta.last_request_successful

    def as_flat_dict(self) -> Dict[str, Any]:
        """Legacy flattened envelope: record fields merged with bookkeeping.

        Bookkeeping keys win over record fields of the same name.
        """
        flat: Dict[str, Any] = dict(self.record or {})
        flat.update({
            "data": self.record,
            "lastDataRequest": self.meta.last_request_at,
            "lastDataRequestSuccessful": self.meta.last_request_successful,
            "lastSuccessfulDataRequest": self.meta.last_success_at,
        })
        return flat


class FaultLogEntry(BaseModel):
    """One API fault, as shown in the dashboard's log view."""

    id: str
    timestamp: int
    level: LogLevel
    source: str = Field(alias="apiCall")
    reason: str
    details: Dict[str, Union[str, int, float]] = Field(default_factory=dict)

    class Config:
        frozen = True
        populate_by_name = True
        use_enum_values = True

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class StatusSnapshot(BaseModel):
    """What a tile should render right now."""

    status: TileStatus
    record: Optional[DomainRecord] = None
    display_timestamp: Optional[int] = None

    class Config:
        frozen = True
