"""Tiered block cache with optional compression."""

from infura_extract.cache.block_cache import BlockCache, CacheStats
from infura_extract.cache.compression import Compressor, PassthroughCompressor, ZstdCompressor, detect_compressor
from infura_extract.cache.disk import SHARD_SIZE, DiskCache, shard_for

__all__ = [
    "SHARD_SIZE",
    "BlockCache",
    "CacheStats",
    "Compressor",
    "DiskCache",
    "PassthroughCompressor",
    "ZstdCompressor",
    "detect_compressor",
    "shard_for",
]
