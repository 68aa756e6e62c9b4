"""
Postgres-backed ledger using asyncpg.

Stores each ledger entry as one row of a key/value table:

    CREATE TABLE ledger_entries (
        key         TEXT PRIMARY KEY,
        value       BYTEA NOT NULL,
        written_by  TEXT NOT NULL DEFAULT '',
        updated_at  TIMESTAMPTZ NOT NULL DEFAULT now()
    );

Writes are plain upserts. The table is created by `scripts/init_ledger.py`;
`is_available()` reports False until it exists.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import asyncpg
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from fareledger.config import Settings, get_settings
from fareledger.utils.logging import get_logger

log = get_logger(__name__)


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def create_table_sql(table: str) -> str:
    return (
        f"CREATE TABLE IF NOT EXISTS {table} ("
        " key TEXT PRIMARY KEY,"
        " value BYTEA NOT NULL,"
        " written_by TEXT NOT NULL DEFAULT '',"
        " updated_at TIMESTAMPTZ NOT NULL DEFAULT now()"
        ")"
    )


class PostgresLedgerBackend:
    """
    Ledger entries in a single Postgres table, accessed through an asyncpg pool.

    The pool is created lazily on first use and released by `close()`.
    """

    name: str = "postgres"

    def __init__(
        self,
        dsn_override: Optional[str] = None,
        table: Optional[str] = None,
        pool_min_size: int = 1,
        pool_max_size: int = 5,
    ) -> None:
        settings = get_settings()
        self._dsn_override = dsn_override
        self.table = table or settings.ledger_table
        if not self.table.replace("_", "").isalnum():
            raise ValueError(f"Invalid ledger table name '{self.table}'")
        self.pool_min_size = pool_min_size
        self.pool_max_size = pool_max_size
        self._pool: Optional[asyncpg.Pool] = None
        self._pool_lock = asyncio.Lock()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((OSError, ConnectionError)),
        reraise=True,
    )
    async def _create_pool(self) -> asyncpg.Pool:
        return await asyncpg.create_pool(
            self._dsn_override or build_dsn(),
            min_size=self.pool_min_size,
            max_size=self.pool_max_size,
        )

    async def _get_pool(self) -> asyncpg.Pool:
        async with self._pool_lock:
            if self._pool is None:
                self._pool = await self._create_pool()
                log.info("Ledger pool opened", extra={"ledger_table": self.table})
            return self._pool

    async def is_available(self) -> bool:
        try:
            pool = await self._get_pool()
            exists = await pool.fetchval("SELECT to_regclass($1) IS NOT NULL", self.table)
        except (OSError, asyncpg.PostgresError) as exc:
            log.warning("Ledger probe failed", extra={"error": str(exc)})
            return False
        return bool(exists)

    async def get(self, key: str) -> Optional[bytes]:
        pool = await self._get_pool()
        value = await pool.fetchval(f"SELECT value FROM {self.table} WHERE key = $1", key)
        return bytes(value) if value is not None else None

    async def put(self, key: str, value: bytes, principal: str) -> None:
        pool = await self._get_pool()
        await pool.execute(
            f"INSERT INTO {self.table} (key, value, written_by) VALUES ($1, $2, $3) "
            "ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, "
            "written_by = EXCLUDED.written_by, updated_at = now()",
            key,
            value,
            principal,
        )

    async def close(self) -> None:
        async with self._pool_lock:
            if self._pool is not None:
                try:
                    await self._pool.close()
                finally:
                    self._pool = None


__all__ = ["PostgresLedgerBackend", "build_dsn", "create_table_sql"]
