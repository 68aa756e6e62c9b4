"""
Presentation boundary for the fare ledger.

Wires a ledger backend, the record store and the submission controller into
the three operations a UI needs:

    ledger = build_fare_ledger(signer=LocalSigner("0xabc"))
    result = await ledger.load_all()            # records + collected errors
    submission = await ledger.submit(query)      # lifecycle subscription
    stats = ledger.aggregate(result.records)

Backends are resolved by name from settings (`LEDGER_BACKEND`).
"""

from __future__ import annotations

import random
from typing import Callable, Dict, Iterable, List, Optional

from fareledger.aggregation import aggregate
from fareledger.codec import OpaqueCodec, SimulatedFheCodec
from fareledger.config import Settings, get_settings
from fareledger.domain.models import FlightQuery, LoadResult, PriceStats, QueryRecord, sort_records
from fareledger.infrastructure.ledger_backend import InMemoryLedgerBackend, LedgerBackend
from fareledger.infrastructure.ledger_client import LedgerClient, Signer
from fareledger.infrastructure.postgres_backend import PostgresLedgerBackend, build_dsn
from fareledger.sync.lifecycle import (
    DEFAULT_PRICE_BAND,
    StatusListener,
    Submission,
    SubmissionController,
)
from fareledger.sync.record_store import RecordStore
from fareledger.utils.logging import get_logger

log = get_logger(__name__)


def _backend_factories(
    settings: Optional[Settings] = None,
) -> Dict[str, Callable[[], LedgerBackend]]:
    """Registry of available ledger backends."""
    settings = settings or get_settings()
    return {
        "memory": lambda: InMemoryLedgerBackend(),
        "postgres": lambda: PostgresLedgerBackend(
            dsn_override=build_dsn(settings), table=settings.ledger_table
        ),
    }


def available_backends() -> List[str]:
    """List available backend names."""
    return sorted(_backend_factories().keys())


def _resolve_backend(name: str, settings: Optional[Settings] = None) -> LedgerBackend:
    factories = _backend_factories(settings)
    if name not in factories:
        raise ValueError(f"Unknown ledger backend '{name}'. Available: {', '.join(factories)}")
    return factories[name]()


class FareLedger:
    """
    load_all / submit / aggregate over one ledger client.
    """

    def __init__(
        self,
        client: LedgerClient,
        codec: Optional[OpaqueCodec] = None,
        price_band: tuple = DEFAULT_PRICE_BAND,
        rng: Optional[random.Random] = None,
        key_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.client = client
        self.codec = codec or SimulatedFheCodec()
        self.store = RecordStore(client)
        self.controller = SubmissionController(
            self.store,
            self.codec,
            price_band=price_band,
            rng=rng,
            key_factory=key_factory,
            clock=clock,
        )

    @property
    def principal(self) -> str:
        return self.client.principal

    async def load_all(self) -> LoadResult:
        """
        Full re-synchronization from the ledger, newest first.

        This is authoritative over any locally cached list.
        """
        result = await self.store.get_all()
        result.records = sort_records(result.records)
        log.info(
            "Ledger synchronized",
            extra={"records": len(result.records), "errors": len(result.errors)},
        )
        return result

    async def submit(
        self, query: FlightQuery, on_status: Optional[StatusListener] = None
    ) -> Submission:
        return await self.controller.submit(query, on_status=on_status)

    def aggregate(self, records: Iterable[QueryRecord]) -> PriceStats:
        return aggregate(records, self.codec)

    async def drain(self) -> None:
        await self.controller.drain()

    async def close(self) -> None:
        """Let pending analyses finish against durable state, then release the backend."""
        try:
            await self.drain()
        finally:
            await self.client.close()


def build_fare_ledger(
    settings: Optional[Settings] = None,
    signer: Optional[Signer] = None,
    backend: Optional[LedgerBackend] = None,
) -> FareLedger:
    """
    Construct a FareLedger from settings.

    Parameters
    ----------
    settings : Settings | None
        Defaults to the cached environment settings.
    signer : Signer | None
        Write capability; omit for a read-only ledger.
    backend : LedgerBackend | None
        Overrides the backend named by `settings.ledger_backend`.
    """
    settings = settings or get_settings()
    client = LedgerClient(
        backend or _resolve_backend(settings.ledger_backend, settings),
        signer=signer,
        timeout_seconds=settings.ledger_timeout_seconds,
    )
    return FareLedger(client, price_band=(settings.price_min, settings.price_max))


__all__ = [
    "FareLedger",
    "available_backends",
    "build_fare_ledger",
]
