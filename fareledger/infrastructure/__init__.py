"""
Infrastructure package for the fare ledger client.

Centralizes ledger I/O concerns: backends (in-memory, Postgres), the
request/response client with bounded waits, and the signing boundary.
Keep this layer decoupled from record and lifecycle logic.
"""

from fareledger.infrastructure.ledger_backend import InMemoryLedgerBackend, LedgerBackend
from fareledger.infrastructure.ledger_client import (
    LedgerClient,
    LocalSigner,
    Signer,
    SigningRejected,
)
from fareledger.infrastructure.postgres_backend import PostgresLedgerBackend, build_dsn

__all__ = [
    "InMemoryLedgerBackend",
    "LedgerBackend",
    "LedgerClient",
    "LocalSigner",
    "PostgresLedgerBackend",
    "Signer",
    "SigningRejected",
    "build_dsn",
]
