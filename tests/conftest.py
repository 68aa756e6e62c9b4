"""
Pytest configuration for the fare ledger.

Provides fixtures for:
- Settings override and database connection management (integration tests)
- In-memory ledger backends, signed/unsigned clients and FareLedger instances
"""

from __future__ import annotations

import os
from typing import Callable, Generator, Optional

import psycopg
import pytest

from fareledger.config import Settings
from fareledger.domain.models import FlightQuery
from fareledger.infrastructure.ledger_backend import InMemoryLedgerBackend
from fareledger.infrastructure.ledger_client import LedgerClient, LocalSigner, Signer
from fareledger.orchestrator import FareLedger

TEST_PRINCIPAL = "0xAbC0000000000000000000000000000000000001"
FAST_ANALYSIS_DELAY = 0.05


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "fare_ledger"),
        ledger_table="ledger_entries_test",
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except Exception:
        return False


@pytest.fixture(scope="function")
def clean_ledger_table(
    test_dsn: str, test_settings: Settings, db_connection_available: bool
) -> Generator[str, None, None]:
    """
    Recreate the test ledger table around each test and yield its name.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    from scripts.init_ledger import _create_schema

    table = test_settings.ledger_table
    _create_schema(test_dsn, table, drop=True)
    yield table
    with psycopg.connect(test_dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(f"DROP TABLE IF EXISTS {table}")
        conn.commit()


@pytest.fixture
def backend() -> InMemoryLedgerBackend:
    return InMemoryLedgerBackend()


@pytest.fixture
def signer() -> LocalSigner:
    return LocalSigner(TEST_PRINCIPAL)


@pytest.fixture
def client(backend: InMemoryLedgerBackend, signer: LocalSigner) -> LedgerClient:
    return LedgerClient(backend, signer=signer, timeout_seconds=1.0)


@pytest.fixture
def make_ledger(
    backend: InMemoryLedgerBackend,
) -> Callable[..., FareLedger]:
    """
    Build a FareLedger session on the shared in-memory backend.

    Each call is an independent session (own client, store and controller)
    with a short analysis delay.
    """

    def _make(
        principal: Optional[str] = TEST_PRINCIPAL,
        signer: Optional[Signer] = None,
        on_backend: Optional[InMemoryLedgerBackend] = None,
    ) -> FareLedger:
        if signer is None and principal is not None:
            signer = LocalSigner(principal)
        ledger = FareLedger(
            LedgerClient(on_backend or backend, signer=signer, timeout_seconds=1.0)
        )
        ledger.controller.analysis_delay_seconds = FAST_ANALYSIS_DELAY
        return ledger

    return _make


@pytest.fixture
def jfk_lhr() -> FlightQuery:
    return FlightQuery(origin="JFK", destination="LHR", departure_date="2025-06-01")
