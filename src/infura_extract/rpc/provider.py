"""JSON-RPC provider client for Infura-style endpoints."""

import itertools
import logging
from typing import Any

import httpx

from infura_extract.data import NetworkTable
from infura_extract.errors import TransportError
from infura_extract.rpc.retry import RATE_LIMIT_STATUS_CODES

logger = logging.getLogger(__name__)

# Hex-encoded quantities decoded to int, as web3 clients do
BLOCK_QUANTITY_FIELDS = frozenset(
    {
        "baseFeePerGas",
        "blobGasUsed",
        "difficulty",
        "excessBlobGas",
        "gasLimit",
        "gasUsed",
        "number",
        "size",
        "timestamp",
        "totalDifficulty",
    }
)

TRANSACTION_QUANTITY_FIELDS = frozenset(
    {
        "blockNumber",
        "chainId",
        "gas",
        "gasPrice",
        "maxFeePerBlobGas",
        "maxFeePerGas",
        "maxPriorityFeePerGas",
        "nonce",
        "transactionIndex",
        "type",
        "v",
        "value",
        "yParity",
    }
)

WITHDRAWAL_QUANTITY_FIELDS = frozenset({"amount", "index", "validatorIndex"})


def hex_to_int(value: Any) -> Any:
    """
    Decode a JSON-RPC quantity (``"0x1b4"``) to an int.

    Values that are not hex strings are returned unchanged.

    """
    if isinstance(value, str) and value[:2].lower() == "0x":
        try:
            return int(value, 16)
        except ValueError:
            return value
    return value


def _normalize_fields(obj: dict[str, Any], fields: frozenset[str]) -> dict[str, Any]:
    return {key: hex_to_int(item) if key in fields else item for key, item in obj.items()}


def normalize_block(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Decode the quantity fields of a raw block and its transactions.

    Parameters
    ----------
    raw : dict[str, Any]
        Block object as returned by ``eth_getBlockByNumber``

    Returns
    -------
    dict[str, Any]
        Copy of the block with quantities as ints

    """
    block = _normalize_fields(raw, BLOCK_QUANTITY_FIELDS)

    transactions = raw.get("transactions")
    if isinstance(transactions, list):
        block["transactions"] = [
            _normalize_fields(tx, TRANSACTION_QUANTITY_FIELDS) if isinstance(tx, dict) else tx
            for tx in transactions
        ]

    withdrawals = raw.get("withdrawals")
    if isinstance(withdrawals, list):
        block["withdrawals"] = [
            _normalize_fields(w, WITHDRAWAL_QUANTITY_FIELDS) if isinstance(w, dict) else w for w in withdrawals
        ]

    return block


class InfuraRPCProvider:
    """
    Minimal JSON-RPC client over httpx.

    One client serves every network in the table; the endpoint is chosen per
    call from the network name.

    Parameters
    ----------
    networks : NetworkTable
        Network name to endpoint template
    api_key : str
        Provider credential appended to the endpoint template
    timeout : float
        Request timeout in seconds
    transport : httpx.BaseTransport | None
        Custom transport (used by tests to mock the provider)

    """

    def __init__(
        self,
        networks: NetworkTable,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.networks = networks
        self.api_key = api_key
        self.client = httpx.Client(timeout=timeout, transport=transport)
        self._ids = itertools.count(1)

    def make_request(self, network: str, method: str, params: list[Any]) -> Any:
        """
        Issue a single JSON-RPC call.

        Parameters
        ----------
        network : str
            Network name
        method : str
            RPC method name (e.g. 'eth_blockNumber')
        params : list[Any]
            Method parameters

        Returns
        -------
        Any
            The ``result`` member of the response (may be None)

        Raises
        ------
        TransportError
            On HTTP failure, non-JSON response or a JSON-RPC error object

        """
        url = self.networks.endpoint_for(network, self.api_key)
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

        # Messages are built by hand: httpx's own include the URL, and with it the credential
        try:
            response = self.client.post(url, json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            msg = f"{method} on {network}: request timeout ({type(e).__name__})"
            raise TransportError(msg) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            msg = f"{method} on {network}: HTTP error {status} {e.response.reason_phrase}"
            raise TransportError(
                msg,
                status_code=status,
                rate_limited=status in RATE_LIMIT_STATUS_CODES,
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            msg = f"{method} on {network}: HTTP request failed ({type(e).__name__})"
            raise TransportError(msg) from e

        try:
            body = response.json()
        except ValueError as e:
            snippet = response.text[:200]
            msg = f"{method} on {network}: non-JSON response: {snippet!r}"
            raise TransportError(msg, status_code=response.status_code) from e

        if not isinstance(body, dict):
            msg = f"{method} on {network}: unexpected response shape {type(body).__name__}"
            raise TransportError(msg, status_code=response.status_code)

        error = body.get("error")
        if error is not None:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", error) if isinstance(error, dict) else error
            msg = f"{method} on {network}: JSON-RPC error {code}: {message}"
            raise TransportError(msg, rpc_code=code if isinstance(code, int) else None)

        return body.get("result")

    def get_block_by_number(self, network: str, block_number: int) -> dict[str, Any] | None:
        """
        Fetch a block with full transaction objects.

        Parameters
        ----------
        network : str
            Network name
        block_number : int
            Block height

        Returns
        -------
        dict[str, Any] | None
            Normalised block object, or whatever non-object result the provider
            returned (usually None)

        """
        logger.debug("Sending query: eth_getBlockByNumber(%d, true) on %s", block_number, network)
        result = self.make_request(network, "eth_getBlockByNumber", [hex(block_number), True])
        if isinstance(result, dict):
            return normalize_block(result)
        return result

    def get_block_number(self, network: str) -> int:
        """
        Fetch the provider's current head block number.

        Parameters
        ----------
        network : str
            Network name

        Returns
        -------
        int
            Head block number

        Raises
        ------
        TransportError
            If the call fails or the result is not a quantity

        """
        result = self.make_request(network, "eth_blockNumber", [])
        head = hex_to_int(result)
        if not isinstance(head, int) or isinstance(head, bool):
            msg = f"eth_blockNumber on {network}: unexpected result {result!r}"
            raise TransportError(msg)
        return head

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()

    def __enter__(self) -> "InfuraRPCProvider":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
