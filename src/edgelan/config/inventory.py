"""Site inventory and control-plane settings from YAML configuration."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from .schema import SiteConfig

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.catonetworks.com/api/v1/graphql2"


@dataclass
class ControlPlaneSettings:
    """Connection settings for the control-plane API."""
    account_id: str
    base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = None
    api_key_env: str = "EDGELAN_API_KEY"
    timeout: float = 30
    # Attempts per read query; mutations are always sent once
    retries: int = 3
    retry_min_wait: float = 1
    retry_max_wait: float = 10
    verify_ssl: bool = True

    def get_api_key(self) -> str:
        """Get API key from config or environment variable."""
        if self.api_key:
            return self.api_key
        return os.environ.get(self.api_key_env, "")

    @classmethod
    def from_dict(cls, data: dict) -> "ControlPlaneSettings":
        if not data.get("account_id"):
            raise ValueError("controlplane.account_id is required")
        retries = int(data.get("retries", 3))
        if retries < 1:
            raise ValueError("controlplane.retries must be at least 1")
        return cls(
            account_id=str(data["account_id"]),
            base_url=data.get("base_url", DEFAULT_BASE_URL),
            api_key=data.get("api_key"),
            api_key_env=data.get("api_key_env", "EDGELAN_API_KEY"),
            timeout=float(data.get("timeout", 30)),
            retries=retries,
            retry_min_wait=float(data.get("retry_min_wait", 1)),
            retry_max_wait=float(data.get("retry_max_wait", 10)),
            verify_ssl=bool(data.get("verify_ssl", True)),
        )


class SiteInventory:
    """Declared sites loaded from YAML config.

    ```yaml
    controlplane:
      account_id: "12345"
      api_key_env: EDGELAN_API_KEY

    defaults:
      connection_type: SOCKET_X1600
      site_type: BRANCH

    sites:
      branch-berlin:
        name: Berlin
        native_range:
          native_network_range: 10.20.0.0/24
          local_ip: 10.20.0.1
          interface_index: INT_7
    ```

    Keys under ``defaults`` fill in any top-level site field the site
    itself does not set.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the sites.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "sites.yaml",
            Path.cwd() / "sites.yaml",
            Path.home() / ".config" / "edgelan" / "sites.yaml",
            Path("/etc/edgelan/sites.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find sites.yaml. Create one in ./configs/sites.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        defaults = self._config.get("defaults") or {}
        for site_key, site_config in (self._config.get("sites") or {}).items():
            if site_config is None:
                site_config = self._config["sites"][site_key] = {}
            for key, value in defaults.items():
                if key not in site_config:
                    site_config[key] = value

        logger.debug(f"Loaded {len(self.get_site_keys())} site(s) from {self.config_path}")

    def get_settings(self) -> ControlPlaneSettings:
        section = self._config.get("controlplane")
        if not section:
            raise KeyError(f"No 'controlplane' section in {self.config_path}")
        return ControlPlaneSettings.from_dict(section)

    def get_site_keys(self) -> list[str]:
        """Get all site keys."""
        return list((self._config.get("sites") or {}).keys())

    def get_site_config(self, site_key: str) -> dict:
        """Get raw config for a site."""
        sites = self._config.get("sites") or {}
        if site_key not in sites:
            raise KeyError(f"Unknown site: {site_key}")
        return sites[site_key]

    def get_site(self, site_key: str) -> SiteConfig:
        """Get the declared configuration of a site."""
        return SiteConfig.from_dict(self.get_site_config(site_key))
