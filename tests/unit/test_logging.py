from __future__ import annotations

import json
import logging

import pytest

from fareledger.utils.logging import JsonFormatter, _json_formatter

EXPECTED_RECORDS = 10
EXPECTED_INDEX_SIZE = 3


def _record() -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello",
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.records = EXPECTED_RECORDS
    record.record_key = "1717000000000-abc"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["records"] == EXPECTED_RECORDS
    assert payload["record_key"] == "1717000000000-abc"
    assert "lineno" not in payload


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"index_size": EXPECTED_INDEX_SIZE}

    payload = json.loads(_json_formatter(record))

    assert payload["index_size"] == EXPECTED_INDEX_SIZE


def test_json_formatter_serializes_non_json_values() -> None:
    record = _record()
    record.stage = object()

    payload = json.loads(JsonFormatter().format(record))

    assert payload["stage"].startswith("<object object")


@pytest.mark.asyncio
async def test_submission_stages_are_traceable_in_json_logs(make_ledger, jfk_lhr, caplog) -> None:
    ledger = make_ledger()

    with caplog.at_level(logging.INFO, logger="fareledger.sync.lifecycle"):
        submission = await ledger.submit(jfk_lhr)
        await submission.wait()

    payloads = [
        json.loads(_json_formatter(r))
        for r in caplog.records
        if getattr(r, "record_key", None) == submission.key and hasattr(r, "stage")
    ]
    assert [p["stage"] for p in payloads] == [e.stage.value for e in submission.events]
