"""Network table loader."""

from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic_core import core_schema

from infura_extract.errors import ValidationError

NETWORKS_FILE = Path(__file__).parent / "networks.yaml"


class NetworkTable(Mapping[str, str]):
    """
    Immutable mapping of network name to JSON-RPC endpoint template.

    The template is the endpoint URL without the provider credential; the
    credential is appended by :meth:`endpoint_for`.

    Parameters
    ----------
    endpoints : Mapping[str, str]
        Network name to endpoint template

    """

    def __init__(self, endpoints: Mapping[str, str]) -> None:
        self._endpoints = MappingProxyType({name.lower(): url for name, url in endpoints.items()})

    def __getitem__(self, network: str) -> str:
        return self._endpoints[network]

    def __iter__(self) -> Iterator[str]:
        return iter(self._endpoints)

    def __len__(self) -> int:
        return len(self._endpoints)

    def __repr__(self) -> str:
        return f"NetworkTable({list(self._endpoints)})"

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.is_instance_schema(cls)

    def validate_network(self, network: str) -> str:
        """
        Normalise and validate a network name.

        Parameters
        ----------
        network : str
            User-supplied network name (case-insensitive)

        Returns
        -------
        str
            Lower-cased network name

        Raises
        ------
        ValidationError
            If the network is not in the table

        """
        name = network.strip().lower()
        if name not in self._endpoints:
            msg = f"Unsupported network: {network}. Supported networks: {', '.join(self._endpoints)}"
            raise ValidationError(msg)
        return name

    def endpoint_for(self, network: str, api_key: str) -> str:
        """Return the full endpoint URL for ``network`` with ``api_key`` appended."""
        return self._endpoints[self.validate_network(network)] + api_key


def load_networks_config(path: Path = NETWORKS_FILE) -> dict[str, Any]:
    """
    Load the raw network configuration from YAML.

    Parameters
    ----------
    path : Path
        YAML file to read (defaults to the packaged ``networks.yaml``)

    Returns
    -------
    dict[str, Any]
        Parsed configuration

    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def load_network_table(path: Path = NETWORKS_FILE) -> NetworkTable:
    """
    Build the immutable network table.

    Parameters
    ----------
    path : Path
        YAML file to read

    Returns
    -------
    NetworkTable
        Network name to endpoint template

    """
    config = load_networks_config(path)
    return NetworkTable({name: entry["endpoint"] for name, entry in config["networks"].items()})


def get_all_supported_networks() -> list[str]:
    """
    Get list of all supported network names.

    Returns
    -------
    list[str]
        Network names in table order

    """
    return list(load_network_table())
