from __future__ import annotations

import base64

import pytest

from fareledger.codec import OpaqueCodec, SimulatedFheCodec, decode_price, encode_price
from fareledger.errors import DecodeError


def test_round_trip_preserves_query_payload() -> None:
    codec = SimulatedFheCodec()
    payload = {"origin": "JFK", "destination": "LHR", "departureDate": "2025-06-01", "passengers": 2}

    blob = codec.encode(payload)

    assert blob.startswith("FHE-")
    assert codec.decode(blob) == payload


def test_round_trip_handles_non_ascii_and_nested_values() -> None:
    codec = SimulatedFheCodec()
    payload = {"origin": "São Paulo", "legs": [{"to": "Zürich"}, None], "flex": True}

    assert codec.decode(codec.encode(payload)) == payload


def test_simulated_codec_satisfies_protocol() -> None:
    assert isinstance(SimulatedFheCodec(), OpaqueCodec)


def test_decode_rejects_missing_scheme_tag() -> None:
    codec = SimulatedFheCodec()
    untagged = base64.b64encode(b'{"price": 400}').decode("ascii")

    with pytest.raises(DecodeError, match="not tagged"):
        codec.decode(untagged)


def test_decode_rejects_foreign_scheme() -> None:
    blob = SimulatedFheCodec(scheme="CKKS").encode({"price": 400})

    with pytest.raises(DecodeError):
        SimulatedFheCodec().decode(blob)


def test_decode_rejects_malformed_payloads() -> None:
    codec = SimulatedFheCodec()
    not_json = "FHE-" + base64.b64encode(b"price=400").decode("ascii")

    with pytest.raises(DecodeError):
        codec.decode("FHE-***not-base64***")
    with pytest.raises(DecodeError):
        codec.decode(not_json)


def test_scheme_must_be_a_plain_tag() -> None:
    with pytest.raises(ValueError):
        SimulatedFheCodec(scheme="")
    with pytest.raises(ValueError):
        SimulatedFheCodec(scheme="F-HE")


def test_price_helpers_round_trip() -> None:
    codec = SimulatedFheCodec()

    assert decode_price(codec, encode_price(codec, 731)) == 731


@pytest.mark.parametrize(
    "value",
    [{"price": "731"}, {"price": True}, {"amount": 731}, [731]],
)
def test_decode_price_requires_integer_price(value) -> None:
    codec = SimulatedFheCodec()

    with pytest.raises(DecodeError):
        decode_price(codec, codec.encode(value))
