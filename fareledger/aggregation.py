"""
Summary statistics over a record snapshot.

Pure functions: nothing here reads or writes the ledger.
"""

from __future__ import annotations

from typing import Iterable, List

from fareledger.codec import OpaqueCodec, SimulatedFheCodec, decode_price
from fareledger.domain.models import PriceStats, QueryRecord, RecordStatus
from fareledger.errors import DecodeError


def completed_prices(records: Iterable[QueryRecord], codec: OpaqueCodec) -> List[int]:
    """Decoded prices of completed records; undecodable prices are left out."""
    prices: List[int] = []
    for record in records:
        if record.status is not RecordStatus.COMPLETED or not record.encoded_price:
            continue
        try:
            prices.append(decode_price(codec, record.encoded_price))
        except DecodeError:
            continue
    return prices


def aggregate(records: Iterable[QueryRecord], codec: OpaqueCodec | None = None) -> PriceStats:
    """
    Count records by status and compute min/max/avg over completed prices.

    With no decodable completed price, min/max/avg are all 0. The average
    truncates toward zero.
    """
    snapshot = list(records)
    codec = codec or SimulatedFheCodec()
    completed = sum(1 for r in snapshot if r.status is RecordStatus.COMPLETED)
    prices = completed_prices(snapshot, codec)

    if not prices:
        return PriceStats(
            count=len(snapshot),
            completed_count=completed,
            pending_count=len(snapshot) - completed,
        )

    return PriceStats(
        count=len(snapshot),
        completed_count=completed,
        pending_count=len(snapshot) - completed,
        min=min(prices),
        max=max(prices),
        avg=sum(prices) // len(prices),
    )


__all__ = ["aggregate", "completed_prices"]
