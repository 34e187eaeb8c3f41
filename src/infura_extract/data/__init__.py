"""Network table and configuration data."""

from infura_extract.data.loader import (
    NETWORKS_FILE,
    NetworkTable,
    get_all_supported_networks,
    load_network_table,
    load_networks_config,
)

__all__ = [
    "NETWORKS_FILE",
    "NetworkTable",
    "get_all_supported_networks",
    "load_network_table",
    "load_networks_config",
]
