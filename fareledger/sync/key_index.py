"""
KeyIndex management: the ordered list of every record key, stored as one
JSON array of strings under a single ledger entry.

Known consistency gap: `append_key` is a read-modify-write with no
conditional write underneath. Two sessions appending at the same time can
both read the same list, and whichever writes last drops the other's key.
The record itself is still durable at ``query_<key>``; callers detect the
loss by re-reading the index (see RecordStore.ensure_indexed).
"""

from __future__ import annotations

import json
from typing import List

from fareledger.infrastructure.ledger_client import LedgerClient
from fareledger.utils.logging import get_logger

log = get_logger(__name__)

KEY_INDEX_KEY = "query_keys"


def decode_keys(raw: bytes) -> List[str]:
    """
    Parse a stored KeyIndex. Raises ValueError if it is not a JSON list of strings.
    """
    keys = json.loads(raw.decode("utf-8"))
    if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
        raise ValueError("key index is not a list of strings")
    return keys


def encode_keys(keys: List[str]) -> bytes:
    return json.dumps(keys).encode("utf-8")


class KeyIndexManager:
    def __init__(self, client: LedgerClient, index_key: str = KEY_INDEX_KEY) -> None:
        self.client = client
        self.index_key = index_key

    async def list_keys(self) -> List[str]:
        """
        Read the KeyIndex. Absent or malformed entries read as an empty list;
        transport failures raise LedgerReadError.
        """
        raw = await self.client.get(self.index_key)
        if raw is None:
            return []
        try:
            return decode_keys(raw)
        except (UnicodeDecodeError, ValueError) as exc:
            log.warning(
                "Ignoring malformed key index",
                extra={"index_key": self.index_key, "error": str(exc)},
            )
            return []

    async def append_key(self, key: str) -> bool:
        """
        Append `key` unless already present. Returns True if a write happened.

        Not atomic: see the module docstring.
        """
        keys = await self.list_keys()
        if key in keys:
            return False
        keys.append(key)
        await self.client.put(self.index_key, encode_keys(keys))
        log.debug("Key appended to index", extra={"record_key": key, "index_size": len(keys)})
        return True

    async def contains(self, key: str) -> bool:
        return key in await self.list_keys()


__all__ = ["KEY_INDEX_KEY", "KeyIndexManager", "decode_keys", "encode_keys"]
