"""
Domain package for the fare ledger.

Exports the record schema, lifecycle vocabulary and result containers used
across the sync engine and the presentation boundary. Keep this package
focused on data definitions.
"""

from fareledger.domain.models import (
    RECORD_SCHEMA_VERSION,
    FlightQuery,
    LifecycleStage,
    LoadResult,
    PriceStats,
    QueryRecord,
    RecordLoadError,
    RecordStatus,
    StatusEvent,
    sort_records,
)

__all__ = [
    "RECORD_SCHEMA_VERSION",
    "FlightQuery",
    "LifecycleStage",
    "LoadResult",
    "PriceStats",
    "QueryRecord",
    "RecordLoadError",
    "RecordStatus",
    "StatusEvent",
    "sort_records",
]
