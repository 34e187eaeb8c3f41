"""Failure classification and exponential backoff for block fetches."""

from collections.abc import Mapping
from types import MappingProxyType

from infura_extract.core.models import FailureClass
from infura_extract.errors import EmptyResultError, TransportError

# HTTP statuses providers use to signal throttling
RATE_LIMIT_STATUS_CODES = frozenset({429, 529})

# JSON-RPC error codes used for "limit exceeded" / "too many requests"
RATE_LIMIT_RPC_CODES = frozenset({-32005, -32029})

RATE_LIMIT_MARKERS = ("rate limit", "rate exceeded", "too many requests", "limit exceeded", "throttl")


class RetryConfig:
    """
    Configuration for retry behavior of one failure class.

    Parameters
    ----------
    max_attempts : int
        Attempts allowed in total, including the first one
    base_delay : float
        Delay in seconds after the first failed attempt
    max_delay : float
        Maximum delay between attempts
    exponential_base : float
        Base for exponential backoff calculation

    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
    ) -> None:
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay after a failed attempt using exponential backoff.

        Parameters
        ----------
        attempt : int
            Number of the attempt that just failed (1-indexed)

        Returns
        -------
        float
            Delay in seconds

        """
        delay = self.base_delay * (self.exponential_base ** max(attempt - 1, 0))
        return min(delay, self.max_delay)

    def __repr__(self) -> str:
        return (
            f"RetryConfig(max_attempts={self.max_attempts}, base_delay={self.base_delay}, "
            f"max_delay={self.max_delay}, exponential_base={self.exponential_base})"
        )


MAX_ATTEMPTS = 3

DEFAULT_BACKOFF: Mapping[FailureClass, RetryConfig] = MappingProxyType(
    {
        FailureClass.EMPTY_RESULT: RetryConfig(max_attempts=MAX_ATTEMPTS, base_delay=1.0, max_delay=30.0),
        FailureClass.RATE_LIMITED: RetryConfig(max_attempts=MAX_ATTEMPTS, base_delay=5.0, max_delay=60.0),
        FailureClass.TRANSPORT: RetryConfig(max_attempts=MAX_ATTEMPTS, base_delay=1.0, max_delay=30.0),
    }
)


def backoff_delay(
    attempt: int,
    failure_class: FailureClass,
    policy: Mapping[FailureClass, RetryConfig] = DEFAULT_BACKOFF,
) -> float:
    """
    Delay to wait after ``attempt`` failed with ``failure_class``.

    Parameters
    ----------
    attempt : int
        Number of the attempt that just failed (1-indexed)
    failure_class : FailureClass
        How the attempt failed
    policy : Mapping[FailureClass, RetryConfig]
        Per-class backoff configuration

    Returns
    -------
    float
        Delay in seconds

    Examples
    --------
    >>> backoff_delay(1, FailureClass.RATE_LIMITED)
    5.0
    >>> backoff_delay(2, FailureClass.TRANSPORT)
    2.0

    """
    return policy[failure_class].get_delay(attempt)


def _is_rate_limit_message(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in RATE_LIMIT_MARKERS)


def classify_error(error: BaseException) -> FailureClass:
    """
    Map a raw fetch failure onto the failure taxonomy.

    Parameters
    ----------
    error : BaseException
        Exception raised by a fetch attempt

    Returns
    -------
    FailureClass
        ``EMPTY_RESULT`` for structurally unusable responses,
        ``RATE_LIMITED`` when the provider signalled throttling,
        ``TRANSPORT`` for everything else

    """
    if isinstance(error, EmptyResultError):
        return FailureClass.EMPTY_RESULT

    if isinstance(error, TransportError):
        if error.rate_limited:
            return FailureClass.RATE_LIMITED
        if error.status_code in RATE_LIMIT_STATUS_CODES:
            return FailureClass.RATE_LIMITED
        if error.rpc_code in RATE_LIMIT_RPC_CODES:
            return FailureClass.RATE_LIMITED
        # Providers sometimes only say so in the text of a JSON-RPC error
        if error.rpc_code is not None and _is_rate_limit_message(str(error)):
            return FailureClass.RATE_LIMITED

    return FailureClass.TRANSPORT
