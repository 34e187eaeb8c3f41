"""Three-tier block cache: memory, sharded disk, remote fetch."""

import logging
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel

from infura_extract.cache.compression import Compressor, detect_compressor
from infura_extract.cache.disk import DiskCache
from infura_extract.core.models import BlockRecord, CacheKey

logger = logging.getLogger(__name__)


class BlockFetcher(Protocol):
    """Remote tier: returns a block or None when it is unavailable."""

    def fetch(self, network: str, block_number: int) -> BlockRecord | None:
        """Fetch ``block_number`` from ``network``."""
        ...


class CacheStats(BaseModel):
    """
    Per-run cache counters.

    Attributes
    ----------
    memory_hits : int
        Lookups answered by the memory tier
    disk_hits : int
        Lookups answered by the disk tier
    remote_fetches : int
        Lookups answered by the remote fetcher
    unavailable : int
        Lookups no tier could answer
    disk_writes : int
        Entries written to disk

    """

    memory_hits: int = 0
    disk_hits: int = 0
    remote_fetches: int = 0
    unavailable: int = 0
    disk_writes: int = 0


class BlockCache:
    """
    Block lookup through memory, disk and remote tiers.

    Memory entries are written at most once per key and never invalidated.
    Remote results are written through to memory unconditionally and to disk
    best-effort.

    Parameters
    ----------
    fetcher : BlockFetcher
        Remote tier
    cache_root : Path | None
        Disk tier root. The disk tier is disabled if None.
    compressor : Compressor | None
        Compression capability. Detected once here if None.

    """

    def __init__(
        self,
        fetcher: BlockFetcher,
        cache_root: Path | None = None,
        compressor: Compressor | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.cache_root = cache_root
        self.compressor = compressor if compressor is not None else detect_compressor()
        self.stats = CacheStats()
        self._memory: dict[CacheKey, BlockRecord] = {}
        self._disks: dict[str, DiskCache | None] = {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._memory

    def __len__(self) -> int:
        return len(self._memory)

    def disk_for(self, network: str) -> DiskCache | None:
        """
        Disk tier for ``network``, created and probed on first use.

        Returns
        -------
        DiskCache | None
            None if the disk tier is disabled or its directory is unusable

        """
        if network not in self._disks:
            disk = None
            if self.cache_root is not None:
                disk = DiskCache(self.cache_root, network, self.compressor)
                if not disk.probe():
                    disk = None
            self._disks[network] = disk
        return self._disks[network]

    def get(self, network: str, block_number: int) -> BlockRecord | None:
        """
        Look up a block.

        Parameters
        ----------
        network : str
            Network name
        block_number : int
            Block height

        Returns
        -------
        BlockRecord | None
            The block, or None if it is unavailable from every tier

        """
        key = (network, block_number)

        block = self._memory.get(key)
        if block is not None:
            logger.debug("Using in-memory cached data for block %d", block_number)
            self.stats.memory_hits += 1
            return block

        disk = self.disk_for(network)
        if disk is not None:
            block = disk.read(block_number)
            if block is not None:
                self.stats.disk_hits += 1
                return self._remember(key, block)

        block = self.fetcher.fetch(network, block_number)
        if block is None:
            self.stats.unavailable += 1
            return None

        self.stats.remote_fetches += 1
        block = self._remember(key, block)

        if disk is not None and disk.write(block_number, block):
            self.stats.disk_writes += 1

        return block

    def _remember(self, key: CacheKey, block: BlockRecord) -> BlockRecord:
        return self._memory.setdefault(key, block)
