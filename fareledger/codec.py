"""
Opaque codec contract and the default simulated-encryption codec.

A codec turns JSON-representable values into tagged opaque blobs and back.
The default implementation only base64-wraps a JSON document behind a scheme
tag: it is reversible by any reader and provides no confidentiality. Swap in
a real scheme by implementing the OpaqueCodec protocol.

Usage:
    from fareledger.codec import SimulatedFheCodec, encode_price, decode_price

    codec = SimulatedFheCodec()
    blob = encode_price(codec, 512)      # "FHE-eyJwcmljZSI6IDUxMn0="
    decode_price(codec, blob)            # 512
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Protocol, runtime_checkable

from fareledger.errors import DecodeError


@runtime_checkable
class OpaqueCodec(Protocol):
    """
    Pure transform between application values and opaque blobs.

    Implementations must not perform I/O and must satisfy
    ``decode(encode(v)) == v`` for every value they accept.
    """

    scheme: str

    def encode(self, value: Any) -> str:
        ...

    def decode(self, blob: str) -> Any:
        ...


class SimulatedFheCodec:
    """
    Base64-over-JSON codec tagged with ``<scheme>-``.

    The structure (tag + payload) is deterministic; callers that want
    distinct blobs for equal inputs must embed their own randomness.
    """

    def __init__(self, scheme: str = "FHE") -> None:
        if not scheme or "-" in scheme:
            raise ValueError("scheme must be a non-empty tag without '-'")
        self.scheme = scheme
        self._prefix = f"{scheme}-"

    def encode(self, value: Any) -> str:
        document = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        payload = base64.b64encode(document.encode("utf-8")).decode("ascii")
        return self._prefix + payload

    def decode(self, blob: str) -> Any:
        if not isinstance(blob, str) or not blob.startswith(self._prefix):
            raise DecodeError(f"blob is not tagged with scheme '{self.scheme}'")
        payload = blob[len(self._prefix) :]
        try:
            raw = base64.b64decode(payload, validate=True)
            return json.loads(raw.decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
            raise DecodeError(f"malformed {self.scheme} payload: {exc}") from exc


def encode_price(codec: OpaqueCodec, price: int) -> str:
    """Wrap an integer price as ``{"price": n}`` and encode it."""
    return codec.encode({"price": int(price)})


def decode_price(codec: OpaqueCodec, blob: str) -> int:
    """
    Decode a price blob produced by encode_price.

    Raises DecodeError if the blob does not carry an integer ``price``.
    """
    value = codec.decode(blob)
    price = value.get("price") if isinstance(value, dict) else None
    # bool is an int subclass; a stored true/false is not a price
    if not isinstance(price, int) or isinstance(price, bool):
        raise DecodeError("price blob does not carry an integer price")
    return price


__all__ = ["OpaqueCodec", "SimulatedFheCodec", "encode_price", "decode_price"]
