"""
Block record serialization.

Integers are persisted as tagged decimal strings,
``{"kind": "bigint", "value": "115792089237316195423570985008687907853269984665640564039457"}``,
so that no JSON reader along the way can round them through a float. Output
is canonical (sorted keys, compact separators), which makes
``encode(decode(encode(x))) == encode(x)`` hold byte for byte.
"""

import json
import re
from typing import Any

import pydantic

from infura_extract.core.models import BlockRecord
from infura_extract.errors import DecodeError

BIGINT_KIND = "bigint"

_DECIMAL_RE = re.compile(r"-?[0-9]+")

# CPython refuses int <-> str conversions beyond 4300 digits; longer values
# are converted in chunks that stay under the limit
_CHUNK_DIGITS = 4000
_CHUNK = 10**_CHUNK_DIGITS


def _format_decimal(value: int) -> str:
    if -_CHUNK < value < _CHUNK:
        return str(value)
    sign = "-" if value < 0 else ""
    rest = abs(value)
    chunks = []
    while rest >= _CHUNK:
        rest, low = divmod(rest, _CHUNK)
        chunks.append(str(low).zfill(_CHUNK_DIGITS))
    chunks.append(str(rest))
    return sign + "".join(reversed(chunks))


def _tag_integers(value: Any) -> Any:
    # bool is an int subclass but must stay a JSON literal
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return {"kind": BIGINT_KIND, "value": _format_decimal(value)}
    if isinstance(value, dict):
        return {key: _tag_integers(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_tag_integers(item) for item in value]
    return value


def _parse_decimal(text: Any) -> int:
    if not isinstance(text, str) or not _DECIMAL_RE.fullmatch(text):
        msg = f"Malformed bigint value: {text!r}"
        raise DecodeError(msg)
    negative = text.startswith("-")
    digits = text.lstrip("-")
    value = 0
    for i in range(0, len(digits), _CHUNK_DIGITS):
        piece = digits[i : i + _CHUNK_DIGITS]
        value = value * 10 ** len(piece) + int(piece)
    return -value if negative else value


def _untag(obj: dict[str, Any]) -> Any:
    if len(obj) == 2 and "value" in obj:
        if obj.get("kind") == BIGINT_KIND:
            return _parse_decimal(obj["value"])
        # Legacy tag shape: {"type": "BigInt", "value": "<decimal>"}
        if obj.get("type") == "BigInt":
            return _parse_decimal(obj["value"])
    return obj


def encode_value(value: Any) -> bytes:
    """
    Encode an arbitrary JSON-compatible value with tagged integers.

    Parameters
    ----------
    value : Any
        Value to encode

    Returns
    -------
    bytes
        Canonical UTF-8 JSON

    """
    return json.dumps(
        _tag_integers(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def decode_value(data: bytes) -> Any:
    """
    Decode bytes produced by :func:`encode_value`.

    Parameters
    ----------
    data : bytes
        Encoded payload

    Returns
    -------
    Any
        Decoded value with tagged integers restored

    Raises
    ------
    DecodeError
        If the payload is not valid UTF-8 JSON or holds a malformed tag

    """
    try:
        text = data.decode("utf-8")
        return json.loads(text, object_hook=_untag)
    except UnicodeDecodeError as e:
        msg = f"Payload is not valid UTF-8: {e}"
        raise DecodeError(msg) from e
    except json.JSONDecodeError as e:
        msg = f"Payload is not valid JSON: {e}"
        raise DecodeError(msg) from e
    except ValueError as e:
        # Untagged integer literals past the conversion limit
        msg = f"Payload holds an unreadable number: {e}"
        raise DecodeError(msg) from e


def encode(block: BlockRecord) -> bytes:
    """
    Serialize a block record for the disk tier.

    Parameters
    ----------
    block : BlockRecord
        Block to serialize

    Returns
    -------
    bytes
        Canonical tagged JSON

    """
    return encode_value(block.to_wire())


def decode(data: bytes) -> BlockRecord:
    """
    Deserialize a block record from the disk tier.

    Parameters
    ----------
    data : bytes
        Payload produced by :func:`encode` (or a legacy-tagged entry)

    Returns
    -------
    BlockRecord
        Reconstructed block

    Raises
    ------
    DecodeError
        If the payload cannot be parsed or does not describe a block

    """
    raw = decode_value(data)
    if not isinstance(raw, dict):
        msg = f"Expected a JSON object, got {type(raw).__name__}"
        raise DecodeError(msg)
    try:
        return BlockRecord.model_validate(raw)
    except pydantic.ValidationError as e:
        msg = f"Payload is not a valid block record: {e.error_count()} validation error(s)"
        raise DecodeError(msg) from e
