"""Retrying remote block fetcher."""

import logging
import time
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any, Protocol

import pydantic

from infura_extract.core.models import BlockRecord, FailureClass, RetryState
from infura_extract.errors import EmptyResultError, TransportError
from infura_extract.rpc.retry import DEFAULT_BACKOFF, MAX_ATTEMPTS, RetryConfig, backoff_delay, classify_error

logger = logging.getLogger(__name__)


class BlockProvider(Protocol):
    """The provider operations the fetcher needs."""

    def get_block_by_number(self, network: str, block_number: int) -> Any:
        """Return the raw block object (or None) for ``block_number``."""
        ...


class FetchState(StrEnum):
    """States of a single fetch call."""

    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCESS = "success"
    EMPTY_RESULT = "empty_result"
    TRANSPORT_ERROR = "transport_error"
    RETRY_DECISION = "retry_decision"
    GIVE_UP = "give_up"


def parse_block_response(raw: Any, block_number: int) -> BlockRecord:
    """
    Validate a raw ``eth_getBlockByNumber`` result.

    Parameters
    ----------
    raw : Any
        Normalised provider result
    block_number : int
        Requested block height, for error messages

    Returns
    -------
    BlockRecord
        Parsed block

    Raises
    ------
    EmptyResultError
        If the result is null, has no transactions collection, or does not
        validate as a block

    """
    if not isinstance(raw, dict):
        msg = f"Retrieved empty or invalid block {block_number}: {type(raw).__name__} result"
        raise EmptyResultError(msg)
    if not isinstance(raw.get("transactions"), list):
        msg = f"Retrieved block {block_number} without a transactions collection"
        raise EmptyResultError(msg)
    try:
        return BlockRecord.model_validate(raw)
    except pydantic.ValidationError as e:
        msg = f"Retrieved malformed block {block_number}: {e.error_count()} validation error(s)"
        raise EmptyResultError(msg) from e


class RemoteFetcher:
    """
    Fetches blocks from the provider with classified retries and backoff.

    Each call to :meth:`fetch` runs the state machine
    ``Idle -> Requesting -> {Success | EmptyResult | TransportError}
    -> RetryDecision -> Requesting | GiveUp``.

    Parameters
    ----------
    provider : BlockProvider
        JSON-RPC provider
    policy : Mapping[FailureClass, RetryConfig]
        Backoff configuration per failure class
    max_attempts : int
        Attempts per block number, including the first
    sleep : Callable[[float], None]
        Blocking wait, injectable for tests
    clock : Callable[[], float]
        Monotonic clock, injectable for tests

    """

    def __init__(
        self,
        provider: BlockProvider,
        policy: Mapping[FailureClass, RetryConfig] = DEFAULT_BACKOFF,
        max_attempts: int = MAX_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.policy = policy
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._clock = clock
        self.state = FetchState.IDLE

    def fetch(self, network: str, block_number: int) -> BlockRecord | None:
        """
        Fetch one block.

        Parameters
        ----------
        network : str
            Network name
        block_number : int
            Block height

        Returns
        -------
        BlockRecord | None
            The block, or None if it stayed unavailable after every attempt

        """
        retry = RetryState()
        self.state = FetchState.REQUESTING
        logger.debug("Fetching block %d from %s", block_number, network)

        while self.state is FetchState.REQUESTING:
            self._wait_until_eligible(retry)
            retry.attempts += 1

            try:
                raw = self.provider.get_block_by_number(network, block_number)
                block = parse_block_response(raw, block_number)
            except (TransportError, EmptyResultError) as e:
                failure = classify_error(e)
                self.state = (
                    FetchState.EMPTY_RESULT if failure is FailureClass.EMPTY_RESULT else FetchState.TRANSPORT_ERROR
                )
                logger.warning(
                    "Error fetching block %d on %s (attempt %d/%d, %s): %s",
                    block_number,
                    network,
                    retry.attempts,
                    self.max_attempts,
                    failure.value,
                    e,
                )
                self._decide(retry, failure, network, block_number)
                continue

            self.state = FetchState.SUCCESS
            logger.debug(
                "Retrieved block %d on %s with %d transactions (attempt %d)",
                block_number,
                network,
                len(block.transactions),
                retry.attempts,
            )
            return block

        logger.error(
            "Failed to fetch valid block %d on %s after %d attempts (last failure: %s)",
            block_number,
            network,
            retry.attempts,
            retry.last_failure.value if retry.last_failure else "none",
        )
        return None

    def _decide(self, retry: RetryState, failure: FailureClass, network: str, block_number: int) -> None:
        self.state = FetchState.RETRY_DECISION
        retry.last_failure = failure

        if retry.attempts >= self.max_attempts:
            self.state = FetchState.GIVE_UP
            return

        delay = backoff_delay(retry.attempts, failure, self.policy)
        retry.next_eligible_at = self._clock() + delay
        logger.info(
            "Retrying block %d on %s in %.1fs (attempt %d/%d)",
            block_number,
            network,
            delay,
            retry.attempts + 1,
            self.max_attempts,
        )
        self.state = FetchState.REQUESTING

    def _wait_until_eligible(self, retry: RetryState) -> None:
        if retry.next_eligible_at is None:
            return
        remaining = retry.next_eligible_at - self._clock()
        if remaining > 0:
            self._sleep(remaining)
