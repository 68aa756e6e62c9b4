from __future__ import annotations

import asyncio

import pytest

from fareledger.config import Settings
from fareledger.domain.models import QueryRecord, sort_records
from fareledger.infrastructure.ledger_backend import InMemoryLedgerBackend
from fareledger.infrastructure.ledger_client import LocalSigner
from fareledger.infrastructure.postgres_backend import PostgresLedgerBackend
from fareledger.orchestrator import FareLedger, available_backends, build_fare_ledger
from fareledger.sync.lifecycle import DEFAULT_PRICE_BAND
from fareledger.sync.record_store import RecordStore


class _ClosingBackend(InMemoryLedgerBackend):
    def __init__(self) -> None:
        super().__init__()
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def _record(key: str, submitted_at: int) -> QueryRecord:
    return QueryRecord(
        key=key,
        origin="JFK",
        destination="LHR",
        departure_date="2025-06-01",
        submitted_at=submitted_at,
    )


def test_available_backends_contains_known_entries() -> None:
    assert available_backends() == ["memory", "postgres"]


def test_build_fare_ledger_resolves_backend_from_settings() -> None:
    memory = build_fare_ledger(Settings(ledger_backend="memory"))
    postgres = build_fare_ledger(
        Settings(ledger_backend="postgres", ledger_table="fares"), signer=LocalSigner("0x1")
    )

    assert isinstance(memory.client.backend, InMemoryLedgerBackend)
    assert memory.client.can_write is False
    assert isinstance(postgres.client.backend, PostgresLedgerBackend)
    assert postgres.client.backend.table == "fares"
    assert postgres.principal == "0x1"


def test_build_fare_ledger_applies_price_band_and_timeout() -> None:
    ledger = build_fare_ledger(
        Settings(price_min=100, price_max=200, ledger_timeout_seconds=0.5)
    )

    assert ledger.controller.price_band == (100, 200)
    assert ledger.client.timeout_seconds == 0.5


def test_unknown_backend_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown ledger backend"):
        build_fare_ledger(Settings(ledger_backend="ipfs"))


def test_sort_records_newest_first_ties_by_key() -> None:
    records = [_record("b", 10), _record("c", 20), _record("a", 10)]

    assert [r.key for r in sort_records(records)] == ["c", "a", "b"]


@pytest.mark.asyncio
async def test_load_all_returns_canonical_order(make_ledger, client) -> None:
    store = RecordStore(client)
    for record in (_record("b", 10), _record("c", 20), _record("a", 10)):
        await store.put(record)

    result = await make_ledger(principal=None).load_all()

    assert [r.key for r in result.records] == ["c", "a", "b"]
    assert result.errors == []


@pytest.mark.asyncio
async def test_read_only_session_sees_other_sessions_writes(make_ledger, jfk_lhr) -> None:
    writer = make_ledger(principal="0xwriter")
    reader = make_ledger(principal=None)

    submission = await writer.submit(jfk_lhr)
    await writer.close()

    result = await reader.load_all()
    stats = reader.aggregate(result.records)

    assert [r.key for r in result.records] == [submission.key]
    assert stats.completed_count == 1
    assert 300 <= stats.min == stats.max == stats.avg <= 999


def test_fare_ledger_defaults_to_simulated_codec(client) -> None:
    ledger = FareLedger(client)

    assert ledger.codec.scheme == "FHE"


def test_fare_ledger_defaults_to_shared_price_band(client) -> None:
    assert FareLedger(client).controller.price_band == DEFAULT_PRICE_BAND


@pytest.mark.asyncio
async def test_close_releases_backend_after_cancelled_analysis(make_ledger, jfk_lhr) -> None:
    backend = _ClosingBackend()
    ledger = make_ledger(on_backend=backend)
    ledger.controller.analysis_delay_seconds = 10.0

    submission = await ledger.submit(jfk_lhr)
    submission._task.cancel()
    await ledger.close()

    assert backend.closed
    assert ledger.controller.in_flight == 0
