"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .constants import (
    ADDRESS_PREFIX,
    ADMIN_ADDRESS,
    DEFAULT_ASSET_DECIMALS,
    DEFAULT_DEVNET_INDEXER_URL,
    DEFAULT_DEVNET_NODE_URL,
    DEFAULT_MAINNET_INDEXER_URL,
    DEFAULT_MAINNET_NODE_URL,
    DEFAULT_TESTNET_INDEXER_URL,
    DEFAULT_TESTNET_NODE_URL,
    DISPLAY_PRECISION,
    MODULE_ADDRESS,
    MODULE_NAME,
    SHARE_DECIMALS,
    USDC_DECIMALS,
    USDC_METADATA,
)

load_dotenv()


class Network(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    DEVNET = "devnet"


NETWORK_NODE_DEFAULTS = {
    Network.MAINNET: DEFAULT_MAINNET_NODE_URL,
    Network.TESTNET: DEFAULT_TESTNET_NODE_URL,
    Network.DEVNET: DEFAULT_DEVNET_NODE_URL,
}

NETWORK_INDEXER_DEFAULTS = {
    Network.MAINNET: DEFAULT_MAINNET_INDEXER_URL,
    Network.TESTNET: DEFAULT_TESTNET_INDEXER_URL,
    Network.DEVNET: DEFAULT_DEVNET_INDEXER_URL,
}


class ExchangeSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with CLO_EXCHANGE_)
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- network ---
    network: Network = Network.MAINNET
    node_url: str | None = None
    indexer_url: str | None = None

    # --- deployment ---
    module_address: str = MODULE_ADDRESS
    module_name: str = MODULE_NAME
    admin_address: str = ADMIN_ADDRESS
    usdc_metadata: str = USDC_METADATA
    address_prefix: str = ADDRESS_PREFIX

    # --- decimals ---
    usdc_decimals: int = Field(default=USDC_DECIMALS, ge=0)
    share_class_decimals: int = Field(default=SHARE_DECIMALS, ge=0, le=255)
    default_asset_decimals: int = Field(default=DEFAULT_ASSET_DECIMALS, ge=0)
    display_precision: int = Field(default=DISPLAY_PRECISION, ge=0)

    # --- HTTP ---
    http_timeout: float = Field(default=10.0, gt=0)
    http_max_tries: int = Field(default=5, ge=1)
    confirmation_poll_max_interval: float = Field(default=5.0, gt=0)

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CLO_EXCHANGE_",
        env_file=".env",
        extra="ignore",  # ignore unknown keys in env/config file
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v

    @model_validator(mode="after")
    def validate_addresses(self) -> "ExchangeSettings":
        """Validate that configured addresses carry the chain's address prefix."""
        for field_name in ("module_address", "admin_address", "usdc_metadata"):
            value = getattr(self, field_name)
            if not value.startswith(self.address_prefix):
                raise ValueError(
                    f"{field_name} ({value}) must start with '{self.address_prefix}'"
                )
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Custom config-file source with explicit precedence: CLI > ENV > FILE."""
        env_cfg = os.environ.get("CLO_EXCHANGE_CONFIG")
        cfg_path = Path(env_cfg) if env_cfg else None

        class TomlConfigSource(PydanticBaseSettingsSource):
            def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
                super().__init__(settings_cls)
                self._path = path

            def get_field_value(
                self, field: Any, field_name: str
            ) -> tuple[Any, str, bool]:
                return None, "", False

            def __call__(self) -> dict[str, Any]:
                if not self._path:
                    # Try default locations
                    local_config = Path("clo-exchange.toml")
                    user_config = (
                        Path.home() / ".config" / "clo-exchange" / "config.toml"
                    )
                    if local_config.exists():
                        self._path = local_config
                    elif user_config.exists():
                        self._path = user_config
                    else:
                        return {}

                if not self._path.exists():
                    return {}

                with self._path.open("rb") as f:
                    data = tomllib.load(f)  # supports top-level or [clo_exchange]
                body = data.get("clo_exchange", data)
                if not isinstance(body, dict):
                    return {}
                return body

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            dotenv_settings,  # .env
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,  # optional secrets dir
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a JSON-friendly dict."""
        data = self.model_dump(mode="json")
        data["node_url"] = self.resolved_node_url
        data["indexer_url"] = self.resolved_indexer_url
        return data

    @property
    def resolved_node_url(self) -> str:
        """Full-node REST endpoint, falling back to the network default."""
        if self.node_url:
            return self.node_url.rstrip("/")
        return NETWORK_NODE_DEFAULTS[self.network]

    @property
    def resolved_indexer_url(self) -> str:
        """Indexer GraphQL endpoint, falling back to the network default."""
        if self.indexer_url:
            return self.indexer_url
        return NETWORK_INDEXER_DEFAULTS[self.network]

    @property
    def expected_network(self) -> str:
        """Name the wallet's reported network must contain."""
        return self.network.value

    def function_id(self, function_name: str) -> str:
        """Fully-qualified ``address::module::function`` identifier."""
        return f"{self.module_address}::{self.module_name}::{function_name}"
