"""Block range parsing and head resolution."""

import logging
import re
from collections.abc import Callable

from infura_extract.core.models import LATEST, BlockRange, RangeRequest
from infura_extract.errors import HeadQueryError, ValidationError

logger = logging.getLogger(__name__)

# "max" is kept as an older spelling of the head keyword
LATEST_ALIASES = frozenset({LATEST, "max"})

_INT_RE = re.compile(r"[0-9]+")


def _parse_side(text: str, whole: str) -> int | str:
    token = text.strip().lower()
    if token in LATEST_ALIASES:
        return LATEST
    if _INT_RE.fullmatch(token):
        return int(token)
    msg = f"Invalid block range {whole!r}: {text!r} is neither a non-negative integer nor 'latest'"
    raise ValidationError(msg)


def parse_range(text: str) -> RangeRequest:
    """
    Parse a block range argument.

    Accepted forms are ``N``, ``A-B``, ``A-latest`` and ``latest``.

    Parameters
    ----------
    text : str
        Raw range argument

    Returns
    -------
    RangeRequest
        Parsed range, possibly still referring to ``latest``

    Raises
    ------
    ValidationError
        If either side is malformed, or both sides are concrete and start > end

    """
    if "-" in text:
        parts = text.split("-")
        if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
            msg = f"Invalid range format {text!r}: expected <start>-<end>"
            raise ValidationError(msg)
        start = _parse_side(parts[0], text)
        end = _parse_side(parts[1], text)
    else:
        start = end = _parse_side(text, text)

    if isinstance(start, int) and isinstance(end, int) and start > end:
        msg = f"Invalid range: start ({start}) must be less than or equal to end ({end})"
        raise ValidationError(msg)

    return RangeRequest(start=start, end=end)


def _clamp(value: int, head: int, label: str) -> int:
    if value > head:
        logger.warning(
            "%s block (%d) exceeds the latest block (%d). Adjusting %s block to %d.",
            label.capitalize(),
            value,
            head,
            label,
            head,
        )
        return head
    return value


def resolve_range(request: RangeRequest, get_head: Callable[[], int]) -> BlockRange:
    """
    Resolve a parsed range into concrete, head-clamped bounds.

    The head is queried exactly once and reused for every ``latest``
    occurrence and for clamping.

    Parameters
    ----------
    request : RangeRequest
        Parsed range
    get_head : Callable[[], int]
        Returns the provider's current head block number. Its exceptions
        propagate, except a HeadQueryError for a range without "latest",
        which leaves the range unclamped.

    Returns
    -------
    BlockRange
        Inclusive, ascending bounds

    Raises
    ------
    ValidationError
        If the resolved start lies above the resolved end

    """
    if request.needs_head:
        head = get_head()
    else:
        try:
            head = get_head()
        except HeadQueryError as e:
            logger.warning("Could not obtain the latest block number, range is not clamped: %s", e)
            return BlockRange(start=request.start, end=request.end)
    logger.debug("Latest block number: %d", head)

    start = head if request.start == LATEST else _clamp(request.start, head, "start")
    end = head if request.end == LATEST else _clamp(request.end, head, "end")

    if start > end:
        # Only reachable as "latest-B" with B below the head
        msg = f"Invalid range: start ({start}) must be less than or equal to end ({end})"
        raise ValidationError(msg)

    return BlockRange(start=start, end=end)
