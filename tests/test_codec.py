"""Tests for the block record codec."""

import json

import pytest

from conftest import HUGE_VALUE, make_block, make_tx

from infura_extract.core.codec import decode, decode_value, encode, encode_value
from infura_extract.core.models import Transaction
from infura_extract.errors import DecodeError


def test_integers_are_tagged():
    """Integers are persisted as tagged decimal strings, never as JSON numbers."""
    block = make_block(100, [make_tx()])
    payload = json.loads(encode(block))

    assert payload["number"] == {"kind": "bigint", "value": "100"}
    tx = payload["transactions"][0]
    assert tx["value"] == {"kind": "bigint", "value": str(HUGE_VALUE)}
    assert tx["gasPrice"] == {"kind": "bigint", "value": "30000000000"}
    assert tx["nonce"] == {"kind": "bigint", "value": "7"}


def test_round_trip_preserves_big_integers():
    """decode(encode(x)) keeps every integer exactly."""
    value = 10**40 + 1
    nonce = 2**64 + 3
    block = make_block(
        19_000_000,
        [make_tx(value=value, gas_price=2**70, nonce=nonce)],
        totalDifficulty=58_750_003_716_598_352_816_469,
    )

    restored = decode(encode(block))

    tx = restored.transactions[0]
    assert isinstance(tx, Transaction)
    assert tx.value == value
    assert str(tx.value) == str(value)
    assert tx.gas_price == 2**70
    assert tx.nonce == nonce
    assert restored.number == 19_000_000
    assert restored.model_extra["totalDifficulty"] == 58_750_003_716_598_352_816_469


def test_reencode_is_byte_identical():
    """encode(decode(encode(x))) == encode(x)."""
    block = make_block(
        5,
        [make_tx(), make_tx(to=None, input="0x6080", v=27, accessList=[])],
        withdrawals=[{"index": 1, "amount": 2**40, "address": "0xabc"}],
    )

    first = encode(block)
    assert encode(decode(first)) == first


def test_untagged_values_keep_literal_types():
    """Strings, booleans, nulls and lists decode as themselves."""
    data = encode_value({"a": "0x10", "b": True, "c": None, "d": [1, "x"], "e": 1.5})
    assert decode_value(data) == {"a": "0x10", "b": True, "c": None, "d": [1, "x"], "e": 1.5}


def test_booleans_are_not_tagged():
    """bool is an int subclass but stays a JSON literal."""
    assert json.loads(encode_value({"flag": False})) == {"flag": False}


def test_decodes_legacy_tag_shape():
    """Older cache entries use {"type": "BigInt"} tags."""
    legacy = {
        "number": {"type": "BigInt", "value": "42"},
        "transactions": [
            {
                "from": "0xaaa",
                "to": None,
                "value": {"type": "BigInt", "value": "340282366920938463463374607431768211456"},
            }
        ],
    }
    block = decode(json.dumps(legacy).encode())

    assert block.number == 42
    assert block.transactions[0].value == 2**128
    assert block.transactions[0].to is None


@pytest.mark.parametrize(
    "payload",
    [
        b"\xff\xfe not utf-8",
        b"{not json",
        b"[1, 2, 3]",
        b'{"number": {"kind": "bigint", "value": "12.5"}, "transactions": []}',
        b'{"number": {"kind": "bigint", "value": "1"}}',
    ],
)
def test_invalid_payloads_raise_decode_error(payload):
    """Every kind of malformed payload surfaces as DecodeError."""
    with pytest.raises(DecodeError):
        decode(payload)


def test_output_is_canonical():
    """Key order of the input does not affect the encoded bytes."""
    a = make_block(1, [make_tx()], extraData="0x", miner="0xm")
    b = make_block(1, [make_tx()], miner="0xm", extraData="0x")
    assert encode(a) == encode(b)


def test_integers_beyond_string_conversion_limit_round_trip():
    """Integers longer than the interpreter's 4300-digit str() limit survive exactly."""
    value = 10**5000 + 7
    block = make_block(8, [make_tx(value=-value)], difficulty=value)

    payload = json.loads(encode(block))
    assert payload["difficulty"]["value"] == "1" + "0" * 4999 + "7"
    assert payload["transactions"][0]["value"]["value"] == "-1" + "0" * 4999 + "7"

    restored = decode(encode(block))
    assert restored.model_extra["difficulty"] == value
    assert restored.transactions[0].value == -value


def test_long_tagged_value_decodes():
    data = json.dumps({"number": {"kind": "bigint", "value": "8"}, "blob": {"kind": "bigint", "value": "1" * 5000}})
    assert decode_value(data.encode())["blob"] == int("1" * 1000) * 10**4000 + int("1" * 4000)


def test_long_untagged_number_is_decode_error():
    with pytest.raises(DecodeError):
        decode_value(b'{"blob": ' + b"1" * 5000 + b"}")
