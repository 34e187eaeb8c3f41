"""Tests for backoff policy and failure classification."""

import pytest

from infura_extract.core.models import FailureClass
from infura_extract.errors import EmptyResultError, TransportError
from infura_extract.rpc.retry import DEFAULT_BACKOFF, MAX_ATTEMPTS, RetryConfig, backoff_delay, classify_error


@pytest.mark.parametrize(
    ("failure", "expected"),
    [
        (FailureClass.EMPTY_RESULT, [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]),
        (FailureClass.TRANSPORT, [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]),
        (FailureClass.RATE_LIMITED, [5.0, 10.0, 20.0, 40.0, 60.0, 60.0, 60.0]),
    ],
)
def test_backoff_doubles_up_to_cap(failure, expected):
    assert [backoff_delay(attempt, failure) for attempt in range(1, 8)] == expected


def test_default_ceiling_is_three_attempts():
    assert MAX_ATTEMPTS == 3
    assert all(config.max_attempts == 3 for config in DEFAULT_BACKOFF.values())


def test_custom_retry_config():
    config = RetryConfig(base_delay=0.5, max_delay=3.0, exponential_base=3.0)
    assert [config.get_delay(n) for n in (1, 2, 3)] == [0.5, 1.5, 3.0]


def test_classify_empty_result():
    assert classify_error(EmptyResultError("null block")) is FailureClass.EMPTY_RESULT


@pytest.mark.parametrize(
    "error",
    [
        TransportError("HTTP error 429", status_code=429),
        TransportError("HTTP error 529", status_code=529),
        TransportError("flagged", rate_limited=True),
        TransportError("JSON-RPC error -32005: limit exceeded", rpc_code=-32005),
        TransportError("JSON-RPC error -32000: project ID request rate exceeded", rpc_code=-32000),
        TransportError("JSON-RPC error -32000: Too Many Requests", rpc_code=-32000),
    ],
)
def test_classify_rate_limited(error):
    assert classify_error(error) is FailureClass.RATE_LIMITED


@pytest.mark.parametrize(
    "error",
    [
        TransportError("HTTP error 500", status_code=500),
        TransportError("HTTP error 502", status_code=502),
        TransportError("request timeout"),
        TransportError("JSON-RPC error -32603: internal error", rpc_code=-32603),
        ConnectionError("reset by peer"),
    ],
)
def test_classify_other_transport_errors(error):
    assert classify_error(error) is FailureClass.TRANSPORT
