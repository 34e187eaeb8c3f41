"""Compression capability for the disk tier."""

import logging
import shutil
import subprocess
from typing import Protocol

from infura_extract.errors import CacheIOError, DecodeError

logger = logging.getLogger(__name__)


class Compressor(Protocol):
    """
    Byte-stream compression capability.

    Methods
    -------
    available()
        Whether compressed entries can be read and written in this run
    compress(data)
        Compress bytes
    decompress(data)
        Decompress bytes

    """

    def available(self) -> bool:
        """Whether the capability is usable."""
        ...

    def compress(self, data: bytes) -> bytes:
        """Compress ``data``."""
        ...

    def decompress(self, data: bytes) -> bytes:
        """Decompress ``data``."""
        ...


class PassthroughCompressor:
    """No-op compressor used when no real compressor is available."""

    def available(self) -> bool:
        return False

    def compress(self, data: bytes) -> bytes:
        return data

    def decompress(self, data: bytes) -> bytes:
        return data


class ZstdCompressor:
    """
    Zstandard compression through the external ``zstd`` command.

    Parameters
    ----------
    binary : str
        Name or path of the zstd executable
    level : int
        Compression level passed as ``-<level>``
    timeout : float
        Per-invocation timeout in seconds

    """

    def __init__(self, binary: str = "zstd", level: int = 3, timeout: float = 60.0) -> None:
        self.binary = binary
        self.level = level
        self.timeout = timeout
        self._available: bool | None = None

    def available(self) -> bool:
        """
        Probe for the zstd executable.

        The probe runs once; the result is reused for the lifetime of the
        instance.

        Returns
        -------
        bool
            True if ``zstd --version`` succeeds

        """
        if self._available is None:
            self._available = self._probe()
        return self._available

    def _probe(self) -> bool:
        if shutil.which(self.binary) is None:
            return False
        try:
            subprocess.run(
                [self.binary, "--version"],
                capture_output=True,
                check=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("zstd probe failed: %s", e)
            return False
        return True

    def _run(self, args: list[str], data: bytes) -> bytes:
        completed = subprocess.run(
            [self.binary, *args],
            input=data,
            capture_output=True,
            check=True,
            timeout=self.timeout,
        )
        return completed.stdout

    def compress(self, data: bytes) -> bytes:
        """
        Compress bytes with ``zstd -<level> --stdout``.

        Raises
        ------
        CacheIOError
            If the zstd process fails

        """
        try:
            return self._run([f"-{self.level}", "--stdout"], data)
        except (OSError, subprocess.SubprocessError) as e:
            msg = f"zstd compression failed: {e}"
            raise CacheIOError(msg) from e

    def decompress(self, data: bytes) -> bytes:
        """
        Decompress bytes with ``zstd -d --stdout``.

        Raises
        ------
        DecodeError
            If the input is not a valid zstd frame or the process fails

        """
        try:
            return self._run(["-d", "--stdout"], data)
        except (OSError, subprocess.SubprocessError) as e:
            msg = f"zstd decompression failed: {e}"
            raise DecodeError(msg) from e


def detect_compressor(binary: str = "zstd") -> Compressor:
    """
    Select the compressor for this run.

    Parameters
    ----------
    binary : str
        Name or path of the zstd executable

    Returns
    -------
    Compressor
        A :class:`ZstdCompressor` if zstd is installed, otherwise a
        :class:`PassthroughCompressor`

    """
    zstd = ZstdCompressor(binary=binary)
    if zstd.available():
        logger.debug("zstd available, disk cache entries will be compressed")
        return zstd
    logger.debug("zstd not found, disk cache entries will be stored uncompressed")
    return PassthroughCompressor()
