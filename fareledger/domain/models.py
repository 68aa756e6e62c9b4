"""
Domain models for the fare ledger.

QueryRecord mirrors the JSON document stored under ``query_<key>`` in the
ledger. Field aliases keep the stored camelCase names; the record key itself
is not part of the stored document (it is the ledger key suffix).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

RECORD_SCHEMA_VERSION = 1


class RecordStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class FlightQuery(BaseModel):
    """
    Raw query as entered by the user, before encoding.
    """

    origin: str = Field("", description="Departure airport or city.")
    destination: str = Field("", description="Arrival airport or city.")
    departure_date: str = Field("", alias="departureDate", description="ISO calendar date.")
    passengers: int = Field(1, description="Number of travellers.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }


class QueryRecord(BaseModel):
    """
    One flight-price query as persisted in the ledger.
    """

    key: str = Field(..., exclude=True, description="Ledger key suffix; not stored in the body.")
    origin: str = Field(..., description="Route origin.")
    destination: str = Field(..., description="Route destination.")
    departure_date: str = Field(..., alias="departureDate", description="ISO calendar date.")
    encoded_query: str = Field("", alias="encryptedQuery", description="Opaque query blob.")
    encoded_price: str = Field("", alias="encryptedPrice", description="Opaque price blob.")
    submitted_at: int = Field(0, alias="timestamp", description="Epoch seconds at creation.")
    owner: str = Field("", description="Submitting principal.")
    status: RecordStatus = Field(RecordStatus.PENDING, description="Lifecycle status.")
    schema_version: int = Field(RECORD_SCHEMA_VERSION, alias="schemaVersion")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "extra": "ignore",
    }

    @property
    def is_completed(self) -> bool:
        return self.status is RecordStatus.COMPLETED

    def is_owned_by(self, principal: Optional[str]) -> bool:
        """Principals compare case-insensitively (hex addresses differ only in case)."""
        if not principal:
            return False
        return self.owner.lower() == principal.lower()


@dataclass(frozen=True)
class RecordLoadError:
    """One entry that could not be loaded during a full listing."""

    key: Optional[str]
    reason: str


@dataclass
class LoadResult:
    """Records loaded from the ledger plus the per-record failures collected on the way."""

    records: List[QueryRecord] = field(default_factory=list)
    errors: List[RecordLoadError] = field(default_factory=list)
    available: bool = True


@dataclass(frozen=True)
class PriceStats:
    """Summary statistics over a record snapshot."""

    count: int = 0
    completed_count: int = 0
    pending_count: int = 0
    min: int = 0
    max: int = 0
    avg: int = 0


class LifecycleStage(str, Enum):
    CREATED = "created"
    ENCODING = "encoding"
    PERSISTED_PENDING = "persisted_pending"
    ANALYZING = "analyzing"
    PERSISTED_COMPLETED = "persisted_completed"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (LifecycleStage.DONE, LifecycleStage.FAILED)


@dataclass(frozen=True)
class StatusEvent:
    """Notification emitted at each lifecycle transition."""

    stage: LifecycleStage
    message: str
    key: Optional[str] = None


def sort_records(records: List[QueryRecord]) -> List[QueryRecord]:
    """
    Canonical order: newest first, ties broken by key ascending.
    """
    return sorted(records, key=lambda r: (-r.submitted_at, r.key))


__all__ = [
    "RECORD_SCHEMA_VERSION",
    "RecordStatus",
    "FlightQuery",
    "QueryRecord",
    "RecordLoadError",
    "LoadResult",
    "PriceStats",
    "LifecycleStage",
    "StatusEvent",
    "sort_records",
]
