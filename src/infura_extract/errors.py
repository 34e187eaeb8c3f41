"""Exception taxonomy for block extraction."""


class ExtractError(Exception):
    """Base class for all infura-extract errors."""


class ValidationError(ExtractError):
    """Malformed network or block range argument."""


class ConfigError(ExtractError):
    """Missing or invalid process configuration (e.g. the provider credential)."""


class HeadQueryError(ExtractError):
    """The provider's current head block number could not be obtained."""


class CacheIOError(ExtractError):
    """Disk cache directory, read or write failure."""


class DecodeError(ExtractError):
    """A cached payload could not be decoded into a block record."""


class TransportError(ExtractError):
    """
    Provider call failure.

    Parameters
    ----------
    message : str
        Human readable description
    status_code : int | None
        HTTP status code, if the failure came with an HTTP response
    rpc_code : int | None
        JSON-RPC error code, if the provider returned an error object
    rate_limited : bool
        True when the provider explicitly signalled rate limiting

    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        rpc_code: int | None = None,
        rate_limited: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.rpc_code = rpc_code
        self.rate_limited = rate_limited


class EmptyResultError(ExtractError):
    """The provider answered, but without a usable block object."""
