"""
Record Store: QueryRecord persistence on top of LedgerClient and the KeyIndex.

Each record lives at ``query_<key>`` as UTF-8 JSON. A new record is written
first and indexed second, so the index never points at a missing record but
a record can briefly exist unindexed.
"""

from __future__ import annotations

import json
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from fareledger.domain.models import (
    RECORD_SCHEMA_VERSION,
    LoadResult,
    QueryRecord,
    RecordLoadError,
)
from fareledger.errors import DecodeError, IndexRace, LedgerReadError
from fareledger.infrastructure.ledger_client import LedgerClient
from fareledger.sync.key_index import KeyIndexManager
from fareledger.utils.logging import get_logger

log = get_logger(__name__)

RECORD_PREFIX = "query_"


def record_ledger_key(key: str) -> str:
    return f"{RECORD_PREFIX}{key}"


def serialize_record(record: QueryRecord) -> bytes:
    return record.model_dump_json(by_alias=True).encode("utf-8")


def deserialize_record(key: str, raw: bytes) -> QueryRecord:
    """
    Decode a stored record body.

    Missing optional fields fall back to the model defaults and unknown
    fields are dropped. A missing schemaVersion is read as version 1; newer
    versions are rejected.
    """
    try:
        body = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise DecodeError(f"record '{key}' is not valid JSON: {exc}") from exc
    if not isinstance(body, dict):
        raise DecodeError(f"record '{key}' is not a JSON object")

    # JSON null for an optional field means "not set"
    body = {name: value for name, value in body.items() if value is not None}
    version = body.get("schemaVersion", 1)
    if not isinstance(version, int) or version > RECORD_SCHEMA_VERSION:
        raise DecodeError(f"record '{key}' has unsupported schemaVersion {version!r}")
    body["key"] = key

    try:
        return QueryRecord.model_validate(body)
    except PydanticValidationError as exc:
        raise DecodeError(f"record '{key}' does not match schema: {exc}") from exc


class RecordStore:
    """
    Maps record keys to QueryRecords; owns the KeyIndex exclusively.
    """

    def __init__(self, client: LedgerClient, key_index: Optional[KeyIndexManager] = None) -> None:
        self.client = client
        self.key_index = key_index or KeyIndexManager(client)

    async def get_one(self, key: str) -> Optional[QueryRecord]:
        """
        Fetch a single record. None if absent; DecodeError if malformed.
        """
        raw = await self.client.get(record_ledger_key(key))
        if raw is None:
            return None
        return deserialize_record(key, raw)

    async def get_all(self) -> LoadResult:
        """
        Load every indexed record, in index order.

        Never raises for ledger trouble: an unavailable ledger yields an empty
        result without touching any key, and per-key failures (missing,
        undecodable, unreadable) are collected into `errors`.
        """
        if not await self.client.probe_available():
            log.warning("Ledger unavailable; skipping record listing")
            return LoadResult(
                errors=[RecordLoadError(key=None, reason="ledger unavailable")],
                available=False,
            )

        try:
            keys = await self.key_index.list_keys()
        except LedgerReadError as exc:
            log.warning("Could not read key index", extra={"error": str(exc)})
            return LoadResult(errors=[RecordLoadError(key=None, reason=str(exc))])

        result = LoadResult()
        for key in keys:
            try:
                record = await self.get_one(key)
            except (LedgerReadError, DecodeError) as exc:
                log.warning("Skipping unloadable record", extra={"record_key": key, "error": str(exc)})
                result.errors.append(RecordLoadError(key=key, reason=str(exc)))
                continue
            if record is None:
                log.warning("Indexed record is missing", extra={"record_key": key})
                result.errors.append(RecordLoadError(key=key, reason="record not found"))
                continue
            result.records.append(record)

        log.debug(
            "Records loaded",
            extra={"loaded": len(result.records), "failed": len(result.errors)},
        )
        return result

    async def put(self, record: QueryRecord) -> bool:
        """
        Write `record` and index its key if it did not exist before.

        Returns True when the record was newly created. Rewriting an existing
        record never touches the KeyIndex.
        """
        ledger_key = record_ledger_key(record.key)
        created = await self.client.get(ledger_key) is None
        await self.client.put(ledger_key, serialize_record(record))
        if created:
            await self.key_index.append_key(record.key)
        log.debug(
            "Record stored",
            extra={"record_key": record.key, "created": created, "status": record.status.value},
        )
        return created

    async def ensure_indexed(self, key: str) -> Optional[IndexRace]:
        """
        Check that `key` survived in the KeyIndex; append it again if a
        concurrent writer dropped it. Returns the detected race, if any.
        """
        if await self.key_index.contains(key):
            return None
        log.warning("Key missing from index after successful write", extra={"record_key": key})
        await self.key_index.append_key(key)
        return IndexRace(key=key, healed=True)


__all__ = [
    "RECORD_PREFIX",
    "RecordStore",
    "deserialize_record",
    "record_ledger_key",
    "serialize_record",
]
