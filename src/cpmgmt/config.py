"""Configuration management for the Check Point management client."""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .constants import (
    DEFAULT_IDENTITY_TIMEOUT,
    DEFAULT_MAX_BATCH_SIZE,
    IDENTITY_AWARENESS_API_PATH,
    MANAGEMENT_API_PATH,
)
from .models.detail_level import DetailLevelAction


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() not in ("false", "0", "no", "off")


@dataclass
class ManagementConfig:
    """Management server connection configuration."""

    server: str
    user: str = ""
    password: str = ""
    port: int = 443
    domain: str | None = None
    api_key: str | None = None
    verify_ssl: bool = True
    timeout: float = 100.0
    max_connections: int = 5
    read_only: bool = False
    continue_last_session: bool = False
    session_name: str | None = None
    session_timeout: int | None = None
    detail_level_action: DetailLevelAction = DetailLevelAction.RAISE

    def __post_init__(self) -> None:
        if isinstance(self.detail_level_action, str):
            self.detail_level_action = DetailLevelAction(self.detail_level_action)
        if self.detail_level_action is DetailLevelAction.SESSION_DEFAULT:
            raise ValueError("detail_level_action of a session cannot be SESSION_DEFAULT")

    @property
    def base_url(self) -> str:
        return f"https://{self.server}:{self.port}/{MANAGEMENT_API_PATH}/"

    def __repr__(self) -> str:
        return (
            f"ManagementConfig(server={self.server!r}, port={self.port}, user={self.user!r}, "
            f"domain={self.domain!r}, read_only={self.read_only})"
        )


@dataclass
class IdentityAwarenessConfig:
    """Identity Awareness gateway connection configuration."""

    gateway: str
    shared_secret: str
    port: int = 443
    verify_ssl: bool = True
    timeout: float = 100.0
    max_connections: int = 3
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    session_timeout: int = DEFAULT_IDENTITY_TIMEOUT

    @property
    def base_url(self) -> str:
        return f"https://{self.gateway}:{self.port}/{IDENTITY_AWARENESS_API_PATH}/"

    def __repr__(self) -> str:
        return f"IdentityAwarenessConfig(gateway={self.gateway!r}, port={self.port})"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: Path | None = None

    @property
    def json_logs(self) -> bool:
        return self.format == "json"


@dataclass
class ClientConfig:
    """Complete client configuration (every section optional but logging)."""

    management: ManagementConfig | None = None
    identity_awareness: IdentityAwarenessConfig | None = None
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientConfig":
        management_data = data.get("management")
        management = ManagementConfig(**management_data) if management_data else None

        ia_data = data.get("identity_awareness")
        identity_awareness = IdentityAwarenessConfig(**ia_data) if ia_data else None

        logging_data = dict(data.get("logging") or {})
        if logging_data.get("file"):
            logging_data["file"] = Path(logging_data["file"])
        logging = LoggingConfig(**logging_data)

        return cls(management=management, identity_awareness=identity_awareness, logging=logging)

    @classmethod
    def from_file(cls, config_path: Path) -> "ClientConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            ClientConfig instance

        Raises:
            ValueError: If the file is not valid YAML or not a mapping.
        """
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )
        return cls.from_dict(data)

    def to_file(self, config_path: Path, include_secrets: bool = False) -> None:
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
            include_secrets: Write password, api_key and shared_secret too.
        """
        secrets = () if include_secrets else ("password", "api_key", "shared_secret")

        def section(obj: Any) -> dict[str, Any] | None:
            if obj is None:
                return None
            return {
                k: v.value if isinstance(v, Enum) else str(v) if isinstance(v, Path) else v
                for k, v in obj.__dict__.items()
                if v is not None and k not in secrets
            }

        data = {
            "management": section(self.management),
            "identity_awareness": section(self.identity_awareness),
            "logging": section(self.logging),
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            CP_SERVER: Management server host
            CP_USER / CP_PASSWORD: Administrator credentials
            CP_API_KEY: API key (instead of user/password)
            CP_PORT, CP_DOMAIN, CP_VERIFY_SSL, CP_READ_ONLY
            CP_DETAIL_LEVEL_ACTION: raise, return_none or auto_reload
            CP_IA_GATEWAY / CP_IA_SHARED_SECRET: Identity Awareness gateway
            CP_IA_PORT, CP_IA_VERIFY_SSL, CP_IA_MAX_BATCH_SIZE
            LOG_LEVEL, LOG_FORMAT

        Returns:
            ClientConfig instance

        Raises:
            ValueError: If a server/gateway is set but its credentials are missing
        """
        management = None
        server = os.environ.get("CP_SERVER")
        if server:
            user = os.environ.get("CP_USER", "")
            password = os.environ.get("CP_PASSWORD", "")
            api_key = os.environ.get("CP_API_KEY")

            if not api_key:
                missing = [n for n, v in (("CP_USER", user), ("CP_PASSWORD", password)) if not v]
                if missing:
                    raise ValueError(
                        f"CP_SERVER is set but required credentials are missing: "
                        f"{', '.join(missing)}. Set CP_USER and CP_PASSWORD, or CP_API_KEY."
                    )

            management = ManagementConfig(
                server=server,
                user=user,
                password=password,
                api_key=api_key,
                port=int(os.environ.get("CP_PORT", "443")),
                domain=os.environ.get("CP_DOMAIN") or None,
                verify_ssl=_env_bool("CP_VERIFY_SSL", True),
                read_only=_env_bool("CP_READ_ONLY", False),
                detail_level_action=DetailLevelAction(
                    os.environ.get("CP_DETAIL_LEVEL_ACTION", DetailLevelAction.RAISE.value)
                ),
            )

        identity_awareness = None
        gateway = os.environ.get("CP_IA_GATEWAY")
        if gateway:
            shared_secret = os.environ.get("CP_IA_SHARED_SECRET", "")
            if not shared_secret:
                raise ValueError("CP_IA_GATEWAY is set but CP_IA_SHARED_SECRET is missing.")
            identity_awareness = IdentityAwarenessConfig(
                gateway=gateway,
                shared_secret=shared_secret,
                port=int(os.environ.get("CP_IA_PORT", "443")),
                verify_ssl=_env_bool("CP_IA_VERIFY_SSL", True),
                max_batch_size=int(
                    os.environ.get("CP_IA_MAX_BATCH_SIZE", str(DEFAULT_MAX_BATCH_SIZE))
                ),
            )

        logging_config = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
        )

        return cls(
            management=management,
            identity_awareness=identity_awareness,
            logging=logging_config,
        )


def load_config(config_file: Path | None = None) -> ClientConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        ClientConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return ClientConfig.from_file(config_file)
    return ClientConfig.from_env()
