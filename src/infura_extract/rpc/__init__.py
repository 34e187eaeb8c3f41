"""RPC layer with provider access, failure classification, backoff and retrying fetches."""

from infura_extract.rpc.fetcher import FetchState, RemoteFetcher, parse_block_response
from infura_extract.rpc.provider import InfuraRPCProvider, normalize_block
from infura_extract.rpc.retry import DEFAULT_BACKOFF, MAX_ATTEMPTS, RetryConfig, backoff_delay, classify_error

__all__ = [
    "DEFAULT_BACKOFF",
    "FetchState",
    "InfuraRPCProvider",
    "MAX_ATTEMPTS",
    "RemoteFetcher",
    "RetryConfig",
    "backoff_delay",
    "classify_error",
    "normalize_block",
    "parse_block_response",
]
