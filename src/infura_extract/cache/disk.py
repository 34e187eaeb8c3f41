"""Sharded on-disk block cache."""

import logging
import os
import tempfile
from pathlib import Path

from infura_extract.cache.compression import Compressor, PassthroughCompressor
from infura_extract.core import codec
from infura_extract.core.models import BlockRecord
from infura_extract.errors import CacheIOError, DecodeError

logger = logging.getLogger(__name__)

SHARD_SIZE = 1_000_000
COMPRESSED_SUFFIX = ".json.zst"
LEGACY_SUFFIX = ".json"


def shard_for(block_number: int) -> int:
    """Shard bucket of a block: ``floor(block_number / 1_000_000)``."""
    return block_number // SHARD_SIZE


class DiskCache:
    """
    Append-only, sharded disk tier for one network.

    Entries live at ``<root>/<network>/<shard>/block-<N>.json`` or
    ``block-<N>.json.zst``. Both representations are probed on read; an
    existing entry is never rewritten.

    Parameters
    ----------
    root : Path
        Cache root directory
    network : str
        Network name, used as the first path component under ``root``
    compressor : Compressor | None
        Compression capability. Uses a passthrough (uncompressed) if None.

    """

    def __init__(self, root: Path, network: str, compressor: Compressor | None = None) -> None:
        self.root = Path(root)
        self.network = network
        self.compressor = compressor or PassthroughCompressor()
        self.network_dir = self.root / network
        self.enabled = True

    def shard_dir(self, block_number: int) -> Path:
        """Directory holding the entry for ``block_number``."""
        return self.network_dir / str(shard_for(block_number))

    def paths(self, block_number: int) -> tuple[Path, Path]:
        """
        Candidate entry paths for a block.

        Returns
        -------
        tuple[Path, Path]
            (compressed path, legacy uncompressed path)

        """
        shard = self.shard_dir(block_number)
        stem = f"block-{block_number}"
        return shard / f"{stem}{COMPRESSED_SUFFIX}", shard / f"{stem}{LEGACY_SUFFIX}"

    def probe(self) -> bool:
        """
        Check that the network directory exists and is writable.

        On failure the disk tier is disabled for the rest of the run.

        Returns
        -------
        bool
            True if the disk tier is usable

        """
        try:
            self.network_dir.mkdir(parents=True, exist_ok=True)
            test_file = self.network_dir / ".write-test"
            test_file.write_bytes(b"test")
            test_file.unlink()
        except OSError as e:
            error = CacheIOError(f"Cache directory setup failed for {self.network_dir}: {e}")
            logger.error("%s. Will continue without disk caching.", error)
            self.enabled = False
            return False

        mode = "with zstd compression" if self.compressor.available() else "without zstd compression"
        logger.debug("Cache directory ready: %s (%s)", self.network_dir, mode)
        return True

    def read(self, block_number: int) -> BlockRecord | None:
        """
        Look up a block on disk.

        The compressed entry is tried first when the compressor is available,
        then the legacy uncompressed entry. Unreadable or undecodable entries
        are logged and treated as misses.

        Parameters
        ----------
        block_number : int
            Block height

        Returns
        -------
        BlockRecord | None
            The cached block, or None on a miss

        """
        if not self.enabled:
            return None

        compressed_path, legacy_path = self.paths(block_number)

        if self.compressor.available() and compressed_path.exists():
            logger.debug("Reading compressed cached data from disk for block %d", block_number)
            try:
                return codec.decode(self.compressor.decompress(compressed_path.read_bytes()))
            except (OSError, DecodeError) as e:
                logger.warning(
                    "Error reading compressed cache file for block %d on %s: %s",
                    block_number,
                    self.network,
                    e,
                )

        if legacy_path.exists():
            logger.debug("Reading legacy cached data from disk for block %d", block_number)
            try:
                return codec.decode(legacy_path.read_bytes())
            except (OSError, DecodeError) as e:
                logger.warning(
                    "Error reading legacy cache file for block %d on %s: %s",
                    block_number,
                    self.network,
                    e,
                )

        return None

    def write(self, block_number: int, block: BlockRecord) -> bool:
        """
        Persist a block, best-effort.

        Shard directories are created on first write. When compression fails
        the entry is written uncompressed instead. Failures are logged, never
        raised.

        Parameters
        ----------
        block_number : int
            Block height
        block : BlockRecord
            Block to persist

        Returns
        -------
        bool
            True if an entry was written

        """
        if not self.enabled:
            return False

        try:
            data = codec.encode(block)
        except (TypeError, ValueError) as e:
            logger.warning("Error encoding block %d on %s for the disk cache: %s", block_number, self.network, e)
            return False
        compressed_path, legacy_path = self.paths(block_number)

        try:
            compressed_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(
                "Error creating shard directory for block %d on %s: %s",
                block_number,
                self.network,
                e,
            )
            return False

        if self.compressor.available():
            try:
                written = self._write_new(compressed_path, self.compressor.compress(data))
            except (OSError, CacheIOError) as e:
                logger.warning(
                    "Failed to write compressed cache for block %d on %s: %s",
                    block_number,
                    self.network,
                    e,
                )
            else:
                if written:
                    logger.debug("Saved and compressed block %d to disk cache", block_number)
                return written

        try:
            written = self._write_new(legacy_path, data)
        except OSError as e:
            logger.warning("Failed to write cache for block %d on %s: %s", block_number, self.network, e)
            return False
        if written:
            logger.debug("Saved block %d to uncompressed disk cache", block_number)
        return written

    @staticmethod
    def _write_new(path: Path, data: bytes) -> bool:
        if path.exists():
            return False
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            # Linking fails if the entry appeared meanwhile; readers never see a partial file
            os.link(tmp_name, path)
        except FileExistsError:
            return False
        finally:
            Path(tmp_name).unlink(missing_ok=True)
        return True
