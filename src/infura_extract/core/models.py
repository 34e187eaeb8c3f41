"""Data models for blocks, transactions, ranges and retry bookkeeping."""

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

LATEST = "latest"

# (network, block number)
CacheKey = tuple[str, int]


class Transaction(BaseModel):
    """
    A transaction object as returned with ``eth_getBlockByNumber(n, true)``.

    Only the fields the extractor needs are declared; every other provider
    field is preserved as an extra so the cached record stays complete.

    Attributes
    ----------
    from_address : str
        Sender address (``from`` on the wire)
    to : str | None
        Recipient address; None for contract creation
    value : int
        Transferred amount in wei
    gas_price : int | None
        Gas price in wei (``gasPrice`` on the wire)
    nonce : int
        Sender nonce
    hash : str | None
        Transaction hash

    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    from_address: str = Field(alias="from")
    to: str | None = None
    value: int = 0
    gas_price: int | None = Field(default=None, alias="gasPrice")
    nonce: int = 0
    hash: str | None = None


class BlockRecord(BaseModel):
    """
    One block with full transaction objects.

    Attributes
    ----------
    number : int
        Block height
    hash : str | None
        Block hash
    transactions : list[Transaction | str]
        Transactions in block order. Bare hashes appear only when a provider
        ignores the full-transactions flag.

    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    number: int
    hash: str | None = None
    transactions: list[Transaction | str]

    def to_wire(self) -> dict:
        """Dump using provider field names, omitting fields the provider never sent."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class FailureClass(StrEnum):
    """Classification of a failed fetch attempt."""

    EMPTY_RESULT = "empty_result"
    RATE_LIMITED = "rate_limited"
    TRANSPORT = "transport"


class RetryState(BaseModel):
    """
    Retry bookkeeping for a single fetch call.

    Attributes
    ----------
    attempts : int
        Attempts made so far
    last_failure : FailureClass | None
        Classification of the most recent failure
    next_eligible_at : float | None
        Clock value before which the next attempt must not start

    """

    attempts: int = 0
    last_failure: FailureClass | None = None
    next_eligible_at: float | None = None


class RangeRequest(BaseModel):
    """
    A parsed, not yet resolved, block range.

    Either side may be the literal ``"latest"``.

    """

    model_config = ConfigDict(frozen=True)

    start: int | Literal["latest"]
    end: int | Literal["latest"]

    @property
    def needs_head(self) -> bool:
        """True if either side refers to the current head."""
        return self.start == LATEST or self.end == LATEST


class BlockRange(BaseModel):
    """
    A resolved, inclusive, ascending block range.

    Attributes
    ----------
    start : int
        First block number
    end : int
        Last block number (inclusive)

    """

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "BlockRange":
        if self.start > self.end:
            msg = f"start ({self.start}) must be less than or equal to end ({self.end})"
            raise ValueError(msg)
        return self

    def __len__(self) -> int:
        return self.end - self.start + 1

    def block_numbers(self) -> range:
        """Block numbers in ascending order."""
        return range(self.start, self.end + 1)
