"""Participant address extraction from blocks."""

from collections.abc import Iterator

from infura_extract.core.models import BlockRecord, Transaction


def extract_addresses(block: BlockRecord) -> Iterator[str]:
    """
    Yield participant addresses of a block in transaction order.

    For each transaction the sender is yielded, followed by the recipient
    when one is present. Addresses are not deduplicated.

    Parameters
    ----------
    block : BlockRecord
        Block with full transaction objects

    Yields
    ------
    str
        Sender and recipient addresses

    """
    for tx in block.transactions:
        if not isinstance(tx, Transaction):
            continue
        yield tx.from_address
        if tx.to:
            yield tx.to
