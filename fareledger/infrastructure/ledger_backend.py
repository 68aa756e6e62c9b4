"""
Key-value ledger backend contract and the in-process implementation.

A backend is the external store collaborator: it knows how to read and
write raw bytes by key and whether it is ready. It applies no locking and
no conditional writes; the last put for a key wins.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class LedgerBackend(Protocol):
    """
    Async key-value store used by LedgerClient.

    Implementations raise their own transport exceptions; LedgerClient maps
    them onto LedgerReadError / LedgerWriteError.
    """

    name: str

    async def is_available(self) -> bool:
        ...

    async def get(self, key: str) -> Optional[bytes]:
        ...

    async def put(self, key: str, value: bytes, principal: str) -> None:
        ...

    async def close(self) -> None:
        ...


class InMemoryLedgerBackend:
    """
    Dict-backed ledger shared by every client holding the same instance.

    Each operation yields to the event loop (optionally after `latency`
    seconds) so concurrent callers interleave the way they would against a
    remote store.
    """

    name: str = "memory"

    def __init__(self, latency: float = 0.0, available: bool = True) -> None:
        self.latency = latency
        self.available = available
        self._entries: Dict[str, Tuple[bytes, str]] = {}
        self.reads = 0
        self.writes = 0

    async def _io(self) -> None:
        await asyncio.sleep(self.latency)

    async def is_available(self) -> bool:
        await self._io()
        return self.available

    async def get(self, key: str) -> Optional[bytes]:
        await self._io()
        self.reads += 1
        entry = self._entries.get(key)
        return entry[0] if entry is not None else None

    async def put(self, key: str, value: bytes, principal: str) -> None:
        await self._io()
        self.writes += 1
        self._entries[key] = (bytes(value), principal)

    def written_by(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        return entry[1] if entry is not None else None

    def snapshot(self) -> Dict[str, bytes]:
        return {key: value for key, (value, _) in self._entries.items()}

    async def close(self) -> None:
        return None


__all__ = ["LedgerBackend", "InMemoryLedgerBackend"]
