"""
Integration tests for the Postgres ledger backend.

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os

import pytest

from fareledger.domain.models import FlightQuery, RecordStatus
from fareledger.infrastructure.ledger_client import LedgerClient, LocalSigner
from fareledger.infrastructure.postgres_backend import PostgresLedgerBackend
from fareledger.orchestrator import FareLedger
from fareledger.sync.key_index import KEY_INDEX_KEY

FAST_ANALYSIS_DELAY = 0.05

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


@pytest.mark.asyncio
async def test_backend_put_get_and_upsert(test_dsn: str, clean_ledger_table: str) -> None:
    backend = PostgresLedgerBackend(dsn_override=test_dsn, table=clean_ledger_table)
    try:
        assert await backend.is_available() is True
        assert await backend.get("query_missing") is None

        await backend.put("query_1", b'{"v": 1}', "0xabc")
        await backend.put("query_1", b'{"v": 2}', "0xdef")

        assert await backend.get("query_1") == b'{"v": 2}'
    finally:
        await backend.close()


@pytest.mark.asyncio
async def test_backend_unavailable_until_table_exists(test_dsn: str, db_connection_available) -> None:
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")
    backend = PostgresLedgerBackend(dsn_override=test_dsn, table="ledger_entries_never_created")
    try:
        assert await backend.is_available() is False
    finally:
        await backend.close()


@pytest.mark.asyncio
async def test_full_lifecycle_against_postgres(test_dsn: str, clean_ledger_table: str) -> None:
    backend = PostgresLedgerBackend(dsn_override=test_dsn, table=clean_ledger_table)
    ledger = FareLedger(LedgerClient(backend, signer=LocalSigner("0xabc")))
    ledger.controller.analysis_delay_seconds = FAST_ANALYSIS_DELAY
    try:
        submission = await ledger.submit(
            FlightQuery(origin="JFK", destination="LHR", departure_date="2025-06-01")
        )
        await submission.wait()

        result = await ledger.load_all()
        assert [r.key for r in result.records] == [submission.key]
        assert result.records[0].status is RecordStatus.COMPLETED
        assert await backend.get(KEY_INDEX_KEY) is not None
    finally:
        await ledger.close()
