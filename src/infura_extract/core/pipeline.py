"""Sequential per-block extraction pipeline."""

import logging
from collections.abc import Callable
from typing import Protocol

from pydantic import BaseModel, Field

from infura_extract.core.extractor import extract_addresses
from infura_extract.core.models import BlockRange, BlockRecord
from infura_extract.errors import ExtractError

logger = logging.getLogger(__name__)


class BlockSource(Protocol):
    """Anything that can look up a block by network and number."""

    def get(self, network: str, block_number: int) -> BlockRecord | None:
        """Return the block, or None when it is unavailable."""
        ...


class ExtractionSummary(BaseModel):
    """
    Outcome of one extraction run.

    Attributes
    ----------
    network : str
        Network name
    start : int
        First block number
    end : int
        Last block number
    blocks_processed : int
        Blocks whose addresses were emitted
    blocks_skipped : list[int]
        Blocks that stayed unavailable or failed
    addresses : int
        Number of address lines emitted

    """

    network: str
    start: int
    end: int
    blocks_processed: int = 0
    blocks_skipped: list[int] = Field(default_factory=list)
    addresses: int = 0


class ExtractionPipeline:
    """
    Walks a block range strictly in ascending order, one block at a time.

    Each block is looked up, its addresses extracted and handed to the sink
    before the next block is requested. Unavailable blocks, and blocks whose
    lookup raises an :class:`~infura_extract.errors.ExtractError`, are skipped.

    Parameters
    ----------
    source : BlockSource
        Block lookup (normally a :class:`~infura_extract.cache.BlockCache`)
    network : str
        Network name

    """

    def __init__(self, source: BlockSource, network: str) -> None:
        self.source = source
        self.network = network

    def run(self, block_range: BlockRange, sink: Callable[[str], None]) -> ExtractionSummary:
        """
        Extract addresses for every block in ``block_range``.

        Parameters
        ----------
        block_range : BlockRange
            Resolved range
        sink : Callable[[str], None]
            Receives each address in emission order

        Returns
        -------
        ExtractionSummary
            Run counters

        """
        summary = ExtractionSummary(network=self.network, start=block_range.start, end=block_range.end)
        total = len(block_range)
        logger.info("Processing %s blocks from %d to %d", self.network, block_range.start, block_range.end)

        for index, block_number in enumerate(block_range.block_numbers(), start=1):
            logger.debug("Processing block %d (%d/%d)", block_number, index, total)

            try:
                block = self.source.get(self.network, block_number)
            except ExtractError as e:
                logger.error("Error processing block %d on %s: %s", block_number, self.network, e)
                summary.blocks_skipped.append(block_number)
                continue
            if block is None:
                logger.warning("Skipping block %d on %s: unavailable", block_number, self.network)
                summary.blocks_skipped.append(block_number)
                continue

            for address in extract_addresses(block):
                sink(address)
                summary.addresses += 1
            summary.blocks_processed += 1

        logger.info(
            "Completed processing. Extracted %d addresses from %s (%d blocks, %d skipped).",
            summary.addresses,
            self.network,
            summary.blocks_processed,
            len(summary.blocks_skipped),
        )
        return summary
