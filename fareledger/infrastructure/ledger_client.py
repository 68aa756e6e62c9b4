"""
Thin request/response client over a ledger backend.

Adds three things on top of the raw backend: a bounded wait on every call,
mapping of transport failures onto LedgerReadError / LedgerWriteError, and
the signing boundary. Reads never need a signer; writes always do.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from fareledger.errors import (
    LedgerReadError,
    LedgerWriteError,
    Unavailable,
    WriteNotAuthorized,
)
from fareledger.infrastructure.ledger_backend import LedgerBackend
from fareledger.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class SigningRejected(Exception):
    """Raised by a signer that declines to authorize a write."""


@runtime_checkable
class Signer(Protocol):
    """
    Identity collaborator: names the current principal and authorizes writes.
    """

    principal: str

    def authorize(self, key: str, value: bytes) -> None:
        """Raise SigningRejected to refuse the write."""
        ...


@dataclass
class LocalSigner:
    """Signer that approves every write for a fixed principal."""

    principal: str

    def authorize(self, key: str, value: bytes) -> None:
        if not self.principal:
            raise SigningRejected("no principal configured")


class LedgerClient:
    """
    Read-by-key, write-by-key and availability probe against one backend.

    Parameters
    ----------
    backend : LedgerBackend
        Store to talk to. Shared between clients to model several sessions.
    signer : Signer | None
        Write capability. Without it, `put` fails with LedgerWriteError.
    timeout_seconds : float
        Upper bound for each backend call.
    """

    def __init__(
        self,
        backend: LedgerBackend,
        signer: Optional[Signer] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.backend = backend
        self.signer = signer
        self.timeout_seconds = timeout_seconds

    @property
    def principal(self) -> str:
        return self.signer.principal if self.signer is not None else ""

    @property
    def can_write(self) -> bool:
        return self.signer is not None

    async def probe_available(self) -> bool:
        """
        Ask the backend whether it is ready. Failures and timeouts count as "no".
        """
        try:
            return bool(
                await asyncio.wait_for(self.backend.is_available(), self.timeout_seconds)
            )
        except asyncio.TimeoutError:
            log.warning("Ledger availability probe timed out", extra={"backend": self.backend.name})
            return False
        except Exception as exc:  # noqa: BLE001 - any probe failure means unavailable
            log.warning(
                "Ledger availability probe failed",
                extra={"backend": self.backend.name, "error": str(exc)},
            )
            return False

    async def ensure_available(self) -> None:
        if not await self.probe_available():
            raise Unavailable(f"ledger backend '{self.backend.name}' is not available")

    async def get(self, key: str) -> Optional[bytes]:
        """
        Return the stored bytes, or None when the key was never written.
        """
        try:
            value = await asyncio.wait_for(self.backend.get(key), self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise LedgerReadError(f"read of '{key}' timed out") from exc
        except Exception as exc:  # noqa: BLE001 - backend transport errors are opaque
            raise LedgerReadError(f"read of '{key}' failed: {exc}") from exc
        if value is None or len(value) == 0:
            return None
        return bytes(value)

    async def put(self, key: str, value: bytes) -> None:
        if self.signer is None:
            raise WriteNotAuthorized(f"write of '{key}' requires a signing capability")
        try:
            self.signer.authorize(key, value)
        except SigningRejected as exc:
            raise WriteNotAuthorized(f"write of '{key}' rejected by signer: {exc}") from exc
        try:
            await asyncio.wait_for(
                self.backend.put(key, value, self.signer.principal), self.timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise LedgerWriteError(f"write of '{key}' timed out") from exc
        except Exception as exc:  # noqa: BLE001 - backend transport errors are opaque
            raise LedgerWriteError(f"write of '{key}' failed: {exc}") from exc

    async def close(self) -> None:
        await self.backend.close()


__all__ = ["LedgerClient", "LocalSigner", "Signer", "SigningRejected"]
