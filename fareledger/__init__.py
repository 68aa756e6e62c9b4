"""
Fare Ledger - client-side synchronization engine for encrypted flight-price queries.

This package submits opaquely encoded travel queries to a shared key-value
ledger and tracks them until a computed price is attached:

- An opaque codec contract with a simulated-encryption default
- A ledger client with bounded waits and a signing boundary
- A shared KeyIndex maintained by read-modify-write (no server-side locking)
- A record store that isolates per-record load failures
- A pending -> completed submission lifecycle with status events
- Price aggregation over ledger snapshots
"""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "Your Name"
__license__ = "MIT"

# Public API exports
from fareledger.aggregation import aggregate
from fareledger.codec import OpaqueCodec, SimulatedFheCodec, decode_price, encode_price
from fareledger.config import Settings, get_settings
from fareledger.domain.models import (
    FlightQuery,
    LifecycleStage,
    LoadResult,
    PriceStats,
    QueryRecord,
    RecordStatus,
    StatusEvent,
)
from fareledger.errors import (
    DecodeError,
    FareLedgerError,
    IndexRace,
    LedgerReadError,
    LedgerWriteError,
    Unavailable,
    ValidationError,
)
from fareledger.infrastructure.ledger_client import LedgerClient, LocalSigner
from fareledger.orchestrator import FareLedger, available_backends, build_fare_ledger
from fareledger.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Presentation boundary
    "FareLedger",
    "available_backends",
    "build_fare_ledger",
    "aggregate",
    # Ledger access
    "LedgerClient",
    "LocalSigner",
    # Codec
    "OpaqueCodec",
    "SimulatedFheCodec",
    "decode_price",
    "encode_price",
    # Domain
    "FlightQuery",
    "LifecycleStage",
    "LoadResult",
    "PriceStats",
    "QueryRecord",
    "RecordStatus",
    "StatusEvent",
    # Errors
    "DecodeError",
    "FareLedgerError",
    "IndexRace",
    "LedgerReadError",
    "LedgerWriteError",
    "Unavailable",
    "ValidationError",
    # Logging
    "configure_logging",
    "get_logger",
]
