"""
Error taxonomy for the fare ledger client.

Every failure raised by this package derives from FareLedgerError so callers
can catch the whole family at the presentation boundary. IndexRace is not an
exception: a lost index append is only ever observed after the fact.
"""

from __future__ import annotations

from dataclasses import dataclass


class FareLedgerError(Exception):
    """Base class for all fare ledger errors."""


class ValidationError(FareLedgerError):
    """A query failed local validation and never reached the ledger."""


class Unavailable(FareLedgerError):
    """The ledger reported it is not ready; the operation was not attempted."""


class LedgerReadError(FareLedgerError):
    """A ledger read failed in transport or timed out."""


class LedgerWriteError(FareLedgerError):
    """A ledger write failed in transport, timed out, or was not authorized."""


class WriteNotAuthorized(LedgerWriteError):
    """The write was refused at the signing boundary (no signer, or signer declined)."""


class DecodeError(FareLedgerError):
    """An opaque blob or stored entry is mistagged or malformed."""


@dataclass(frozen=True)
class IndexRace:
    """
    A record was written but its key is missing from the KeyIndex.

    Produced when a concurrent read-modify-write on the index overwrote our
    append. `healed` is True when the key was appended again afterwards.
    """

    key: str
    healed: bool = False


__all__ = [
    "FareLedgerError",
    "ValidationError",
    "Unavailable",
    "LedgerReadError",
    "LedgerWriteError",
    "WriteNotAuthorized",
    "DecodeError",
    "IndexRace",
]
