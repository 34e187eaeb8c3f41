"""Process configuration assembled once at the process boundary."""

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from infura_extract.data import NetworkTable, load_network_table
from infura_extract.errors import ConfigError

API_KEY_ENV = "MM_API_KEY"
CACHE_DIR_ENV = "MM_CACHE_DIR"
DEFAULT_CACHE_ROOT = Path.home() / ".cache" / "infura-extract"


class Settings(BaseModel):
    """
    Immutable run configuration.

    Attributes
    ----------
    api_key : str
        Provider credential appended to every endpoint template
    cache_root : Path
        Root of the on-disk block cache
    cache_root_source : str
        Where ``cache_root`` came from ('default', 'env' or 'option')
    networks : NetworkTable
        Network name to endpoint template
    disk_cache : bool
        Whether the disk tier is enabled

    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    api_key: str = Field(min_length=1)
    cache_root: Path = DEFAULT_CACHE_ROOT
    cache_root_source: str = "default"
    networks: NetworkTable = Field(default_factory=load_network_table)
    disk_cache: bool = True

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        cache_dir: Path | None = None,
        disk_cache: bool = True,
        networks: NetworkTable | None = None,
    ) -> "Settings":
        """
        Build settings from environment variables.

        Parameters
        ----------
        environ : Mapping[str, str] | None
            Environment to read. Uses ``os.environ`` if None.
        cache_dir : Path | None
            Explicit cache root, taking precedence over ``MM_CACHE_DIR``
        disk_cache : bool
            Enable the disk tier
        networks : NetworkTable | None
            Network table. Loads the packaged table if None.

        Returns
        -------
        Settings
            Frozen settings

        Raises
        ------
        ConfigError
            If the provider credential is missing

        """
        env = os.environ if environ is None else environ

        api_key = env.get(API_KEY_ENV, "").strip()
        if not api_key:
            msg = f"{API_KEY_ENV} not set (export it or add it to a .env file)"
            raise ConfigError(msg)

        if cache_dir is not None:
            cache_root, source = cache_dir, "option"
        elif env.get(CACHE_DIR_ENV):
            cache_root, source = Path(env[CACHE_DIR_ENV]), "env"
        else:
            cache_root, source = DEFAULT_CACHE_ROOT, "default"

        return cls(
            api_key=api_key,
            cache_root=cache_root.expanduser(),
            cache_root_source=source,
            networks=networks or load_network_table(),
            disk_cache=disk_cache,
        )

    @property
    def masked_api_key(self) -> str:
        """Credential prefix safe for logging."""
        return f"{self.api_key[:3]}..."
