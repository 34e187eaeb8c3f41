"""Core functionality including models, codec, range resolution and address extraction."""

from infura_extract.core.codec import decode, encode
from infura_extract.core.extractor import extract_addresses
from infura_extract.core.models import (
    LATEST,
    BlockRange,
    BlockRecord,
    CacheKey,
    FailureClass,
    RangeRequest,
    RetryState,
    Transaction,
)
from infura_extract.core.ranges import parse_range, resolve_range

__all__ = [
    "LATEST",
    "BlockRange",
    "BlockRecord",
    "CacheKey",
    "FailureClass",
    "RangeRequest",
    "RetryState",
    "Transaction",
    "decode",
    "encode",
    "extract_addresses",
    "parse_range",
    "resolve_range",
]
