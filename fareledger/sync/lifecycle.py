"""
Submission lifecycle: encode -> persist pending -> analyze -> persist completed.

Stages run strictly in order for one submission:

    created -> encoding -> persisted_pending -> analyzing -> persisted_completed -> done

with `failed` reachable from any non-terminal stage. `submit()` returns as
soon as the pending record is durable; the analysis stage continues as an
asyncio task that sleeps for a fixed delay, then rewrites the record as
completed under the same key.

Partial failure: if the completion write fails, the record stays durably
pending. Nothing rolls it back or retries it.
"""

from __future__ import annotations

import asyncio
import random
import time
import uuid
from datetime import date
from typing import Callable, Dict, FrozenSet, List, Optional, Set

from fareledger.codec import OpaqueCodec, decode_price, encode_price
from fareledger.domain.models import (
    FlightQuery,
    LifecycleStage,
    QueryRecord,
    RecordStatus,
    StatusEvent,
)
from fareledger.errors import (
    DecodeError,
    FareLedgerError,
    IndexRace,
    LedgerReadError,
    Unavailable,
    ValidationError,
    WriteNotAuthorized,
)
from fareledger.sync.record_store import RecordStore
from fareledger.utils.logging import get_logger

log = get_logger(__name__)

ANALYSIS_DELAY_SECONDS = 3.0
DEFAULT_PRICE_BAND = (300, 999)

StatusListener = Callable[[StatusEvent], None]

_TRANSITIONS: Dict[LifecycleStage, FrozenSet[LifecycleStage]] = {
    LifecycleStage.CREATED: frozenset({LifecycleStage.ENCODING, LifecycleStage.FAILED}),
    LifecycleStage.ENCODING: frozenset({LifecycleStage.PERSISTED_PENDING, LifecycleStage.FAILED}),
    LifecycleStage.PERSISTED_PENDING: frozenset({LifecycleStage.ANALYZING, LifecycleStage.FAILED}),
    LifecycleStage.ANALYZING: frozenset(
        {LifecycleStage.PERSISTED_COMPLETED, LifecycleStage.FAILED}
    ),
    LifecycleStage.PERSISTED_COMPLETED: frozenset({LifecycleStage.DONE, LifecycleStage.FAILED}),
}


def new_record_key(clock: Callable[[], float] = time.time) -> str:
    """Millisecond timestamp plus a random suffix, e.g. ``1718000000000-3f9a0c1e``."""
    return f"{int(clock() * 1000)}-{uuid.uuid4().hex[:8]}"


def validate_query(query: FlightQuery) -> None:
    """
    Local checks run before anything touches the ledger.
    """
    missing = [
        name
        for name, value in (
            ("origin", query.origin),
            ("destination", query.destination),
            ("departureDate", query.departure_date),
        )
        if not value or not value.strip()
    ]
    if missing:
        raise ValidationError(f"missing required field(s): {', '.join(missing)}")
    try:
        date.fromisoformat(query.departure_date.strip())
    except ValueError as exc:
        raise ValidationError(
            f"departureDate '{query.departure_date}' is not an ISO date"
        ) from exc
    if query.passengers < 1:
        raise ValidationError("passengers must be at least 1")


class Submission:
    """
    Observable state of one lifecycle instance.

    Listeners are called synchronously at each transition, in subscription
    order. `events` keeps the full history so late subscribers can replay it.
    """

    def __init__(self, query: FlightQuery) -> None:
        self.query = query
        self.key: Optional[str] = None
        self.stage = LifecycleStage.CREATED
        self.events: List[StatusEvent] = []
        self.record: Optional[QueryRecord] = None
        self.error: Optional[BaseException] = None
        self.index_race: Optional[IndexRace] = None
        self._listeners: List[StatusListener] = []
        self._task: Optional[asyncio.Task] = None

    def subscribe(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    @property
    def done(self) -> bool:
        return self.stage.is_terminal

    @property
    def failed(self) -> bool:
        return self.stage is LifecycleStage.FAILED

    async def wait(self) -> "Submission":
        """Block until the submission reaches done or failed."""
        if self._task is not None:
            await self._task
        return self

    def _advance(self, stage: LifecycleStage, message: str) -> None:
        allowed = _TRANSITIONS.get(self.stage, frozenset())
        if stage not in allowed:
            raise RuntimeError(f"illegal lifecycle transition {self.stage.value} -> {stage.value}")
        self.stage = stage
        event = StatusEvent(stage=stage, message=message, key=self.key)
        self.events.append(event)
        log.info(message, extra={"record_key": self.key, "stage": stage.value})
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001 - a broken observer must not stall the lifecycle
                log.exception("Status listener raised", extra={"stage": stage.value})

    def _fail(self, error: BaseException, message: str) -> None:
        self.error = error
        self._advance(LifecycleStage.FAILED, message)


def _failure_message(exc: BaseException) -> str:
    if isinstance(exc, ValidationError):
        return f"Validation failed: {exc}"
    if isinstance(exc, Unavailable):
        return "Ledger unavailable; nothing was submitted."
    if isinstance(exc, WriteNotAuthorized):
        return f"Transaction rejected: {exc}"
    return f"Submission failed: {exc}"


class SubmissionController:
    """
    Drives new queries through the lifecycle against one RecordStore.

    Parameters
    ----------
    store : RecordStore
        Persistence for records and the KeyIndex.
    codec : OpaqueCodec
        Encodes the query payload and prices.
    price_band : tuple[int, int]
        Inclusive bounds of the simulated base price.
    rng : random.Random | None
        Price source; seed it for reproducible runs.
    key_factory : callable | None
        Generates record keys; must not collide across sessions.
    clock : callable | None
        Epoch-seconds clock used for `submitted_at`.
    """

    analysis_delay_seconds: float = ANALYSIS_DELAY_SECONDS

    def __init__(
        self,
        store: RecordStore,
        codec: OpaqueCodec,
        price_band: tuple = DEFAULT_PRICE_BAND,
        rng: Optional[random.Random] = None,
        key_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        low, high = price_band
        if low > high:
            raise ValueError(f"invalid price band {price_band}")
        self.store = store
        self.codec = codec
        self.price_band = (int(low), int(high))
        self._rng = rng or random.Random()
        self._clock = clock or time.time
        self._key_factory = key_factory or (lambda: new_record_key(self._clock))
        self._tasks: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def _draw_price(self) -> int:
        return self._rng.randint(*self.price_band)

    def _build_record(self, query: FlightQuery) -> QueryRecord:
        return QueryRecord(
            key=self._key_factory(),
            origin=query.origin.strip(),
            destination=query.destination.strip(),
            departure_date=query.departure_date.strip(),
            encoded_query=self.codec.encode(query.model_dump(by_alias=True)),
            encoded_price=encode_price(self.codec, self._draw_price()),
            submitted_at=int(self._clock()),
            owner=self.store.client.principal,
            status=RecordStatus.PENDING,
        )

    async def submit(
        self, query: FlightQuery, on_status: Optional[StatusListener] = None
    ) -> Submission:
        """
        Validate, encode and persist `query` as pending, then schedule analysis.

        Raises ValidationError before any ledger access. Ledger failures do not
        raise; they leave the returned submission in the failed stage with
        `error` set.
        """
        submission = Submission(query)
        if on_status is not None:
            submission.subscribe(on_status)

        try:
            validate_query(query)
        except ValidationError as exc:
            submission._fail(exc, _failure_message(exc))
            raise

        submission._advance(LifecycleStage.ENCODING, "Encoding query payload...")
        record = self._build_record(query)
        submission.key = record.key
        try:
            await self.store.client.ensure_available()
            await self.store.put(record)
        except FareLedgerError as exc:
            log.error("Submission failed before persistence", extra={"record_key": record.key})
            submission._fail(exc, _failure_message(exc))
            return submission

        submission.record = record
        submission._advance(
            LifecycleStage.PERSISTED_PENDING,
            f"Encoded query {record.key} submitted; stored as pending.",
        )
        submission._advance(
            LifecycleStage.ANALYZING, f"Analyzing market price for {record.key}..."
        )
        task = asyncio.create_task(self._complete(submission), name=f"analyze-{record.key}")
        submission._task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return submission

    def _analyzed_price(self, record: QueryRecord) -> int:
        try:
            return decode_price(self.codec, record.encoded_price)
        except DecodeError:
            log.warning("Pending price undecodable; drawing a new one", extra={"record_key": record.key})
            return self._draw_price()

    async def _complete(self, submission: Submission) -> None:
        key = submission.key
        await asyncio.sleep(self.analysis_delay_seconds)
        try:
            await self.store.client.ensure_available()
            # Re-read: another session may have touched the record meanwhile.
            current = await self.store.get_one(key)
            if current is None:
                raise LedgerReadError(f"record '{key}' not found at completion")
            completed = current.model_copy(
                update={
                    "status": RecordStatus.COMPLETED,
                    "encoded_price": encode_price(self.codec, self._analyzed_price(current)),
                }
            )
            await self.store.put(completed)
        except Exception as exc:  # noqa: BLE001 - background task: failures become the failed stage
            log.error(
                "Completion failed; record remains pending",
                extra={"record_key": key, "error": str(exc)},
            )
            submission._fail(
                exc, f"Analysis failed for {key}; record remains pending: {exc}"
            )
            return

        submission.record = completed
        submission._advance(
            LifecycleStage.PERSISTED_COMPLETED,
            "Analysis complete! Price generated anonymously.",
        )

        try:
            if await self.store.client.probe_available():
                submission.index_race = await self.store.ensure_indexed(key)
            else:
                log.warning("Index check skipped; ledger unavailable", extra={"record_key": key})
        except FareLedgerError as exc:
            log.warning("Index check skipped", extra={"record_key": key, "error": str(exc)})

        submission._advance(LifecycleStage.DONE, f"Query {key} settled; no further updates.")

    async def drain(self) -> None:
        """
        Wait for every scheduled analysis to finish. A cancelled continuation
        does not stop the wait for the others.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


__all__ = [
    "ANALYSIS_DELAY_SECONDS",
    "DEFAULT_PRICE_BAND",
    "StatusListener",
    "Submission",
    "SubmissionController",
    "new_record_key",
    "validate_query",
]
