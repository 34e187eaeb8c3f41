"""Pytest configuration and shared fixtures for infura-extract tests."""

import zlib
from typing import Any

import pytest

from infura_extract.core.models import BlockRecord
from infura_extract.errors import CacheIOError, DecodeError

SENDER = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"

# Larger than any 64-bit integer
HUGE_VALUE = 2**255 + 12345


def make_tx(
    sender: str = SENDER,
    to: str | None = RECIPIENT,
    value: int = HUGE_VALUE,
    gas_price: int = 30_000_000_000,
    nonce: int = 7,
    **extra: Any,
) -> dict[str, Any]:
    """Build a normalised transaction object."""
    tx = {
        "from": sender,
        "to": to,
        "value": value,
        "gasPrice": gas_price,
        "nonce": nonce,
        "hash": "0x" + "ab" * 32,
    }
    tx.update(extra)
    return tx


def make_block(number: int, transactions: list[dict[str, Any]] | None = None, **extra: Any) -> BlockRecord:
    """Build a block record from normalised provider fields."""
    raw = {
        "number": number,
        "hash": "0x" + f"{number:064x}",
        "timestamp": 1_700_000_000 + number,
        "gasUsed": 21_000,
        "transactions": transactions if transactions is not None else [],
    }
    raw.update(extra)
    return BlockRecord.model_validate(raw)


def rpc_block(number: int, transactions: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    """Raw (hex-encoded) block object as a JSON-RPC provider returns it."""
    return {
        "number": hex(number),
        "hash": "0x" + f"{number:064x}",
        "timestamp": hex(1_700_000_000 + number),
        "gasUsed": "0x5208",
        "transactions": transactions if transactions is not None else [],
    }


def rpc_tx(sender: str = SENDER, to: str | None = RECIPIENT, value: int = HUGE_VALUE) -> dict[str, Any]:
    """Raw (hex-encoded) transaction object."""
    return {
        "from": sender,
        "to": to,
        "value": hex(value),
        "gasPrice": hex(30_000_000_000),
        "nonce": "0x7",
        "hash": "0x" + "cd" * 32,
        "input": "0x",
    }


class FakeClock:
    """Manual clock; ``sleep`` advances time instead of blocking."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedProvider:
    """
    Provider double returning scripted results per block number.

    Each script entry is either a value to return or an exception to raise;
    the last entry repeats once the script is exhausted.
    """

    def __init__(self, scripts: dict[int, list[Any]] | None = None, head: int = 0) -> None:
        self.scripts = scripts or {}
        self.head = head
        self.calls: list[tuple[str, int]] = []
        self.head_calls = 0

    def get_block_by_number(self, network: str, block_number: int) -> Any:
        self.calls.append((network, block_number))
        script = self.scripts.get(block_number, [None])
        index = min(sum(1 for _, n in self.calls if n == block_number) - 1, len(script) - 1)
        outcome = script[index]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def get_block_number(self, network: str) -> int:
        self.head_calls += 1
        return self.head


class StubFetcher:
    """Remote tier double serving prepared blocks."""

    def __init__(self, blocks: dict[int, BlockRecord] | None = None) -> None:
        self.blocks = blocks or {}
        self.calls: list[tuple[str, int]] = []

    def fetch(self, network: str, block_number: int) -> BlockRecord | None:
        self.calls.append((network, block_number))
        return self.blocks.get(block_number)


class ZlibCompressor:
    """Compressor double backed by zlib so tests need no zstd binary."""

    def __init__(self, fail_compress: bool = False) -> None:
        self.fail_compress = fail_compress
        self.decompressed = 0

    def available(self) -> bool:
        return True

    def compress(self, data: bytes) -> bytes:
        if self.fail_compress:
            msg = "compression failed"
            raise CacheIOError(msg)
        return zlib.compress(data)

    def decompress(self, data: bytes) -> bytes:
        self.decompressed += 1
        try:
            return zlib.decompress(data)
        except zlib.error as e:
            raise DecodeError(str(e)) from e


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def compressor() -> ZlibCompressor:
    return ZlibCompressor()


@pytest.fixture
def cache_root(tmp_path):
    return tmp_path / "cache"
