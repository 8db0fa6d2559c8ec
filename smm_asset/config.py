"""Client configuration loading.

Configuration is plain data: a YAML mapping or SMM_* environment variables.

Example YAML:
    host: https://smm.example.org
    username: asset-operator
    password: secret
    verify_ssl: true
    timeout: 30
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import SmmConfigError

_PACKAGE_LOGGER = "smm_asset"

_REQUIRED_KEYS = ("host", "username", "password")
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class SmmConfig:
    """Connection settings.

    Attributes:
        host: Server base URL.
        username: Account username.
        password: Account password.
        verify_ssl: Verify server TLS certificates.
        timeout: Per-request timeout in seconds.
        debug: Log this connection at DEBUG level.
    """

    host: str
    username: str
    password: str
    verify_ssl: bool = True
    timeout: float = 30.0
    debug: bool = False

    def __repr__(self) -> str:
        return (
            f"SmmConfig(host={self.host!r}, username={self.username!r}, "
            f"verify_ssl={self.verify_ssl}, timeout={self.timeout}, debug={self.debug})"
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SmmConfig:
        """Build config from a mapping, validating required keys."""
        missing = [key for key in _REQUIRED_KEYS if not data.get(key)]
        if missing:
            raise SmmConfigError(f"Missing required config keys: {', '.join(missing)}")

        try:
            timeout = float(data.get("timeout", 30.0))
        except (TypeError, ValueError) as err:
            raise SmmConfigError(f"Invalid timeout: {data.get('timeout')!r}") from err

        return cls(
            host=str(data["host"]),
            username=str(data["username"]),
            password=str(data["password"]),
            verify_ssl=_as_bool(data.get("verify_ssl", True)),
            timeout=timeout,
            debug=_as_bool(data.get("debug", False)),
        )

    @classmethod
    def from_env(
        cls, prefix: str = "SMM_", environ: Mapping[str, str] | None = None
    ) -> SmmConfig:
        """Build config from environment variables such as SMM_HOST."""
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for key in ("host", "username", "password", "verify_ssl", "timeout", "debug"):
            value = env.get(f"{prefix}{key.upper()}")
            if value is not None:
                data[key] = value
        return cls.from_mapping(data)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)


def load_config(path: Path | str) -> SmmConfig:
    """Load configuration from a YAML file.

    Raises:
        SmmConfigError: If the file is unreadable, not a mapping, or
            missing required keys
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as err:
        raise SmmConfigError(f"Cannot read config file {path}") from err
    except yaml.YAMLError as err:
        raise SmmConfigError(f"Invalid YAML in {path}") from err

    if not isinstance(data, dict):
        raise SmmConfigError(f"Config file {path} must contain a mapping")
    return SmmConfig.from_mapping(data)


def set_debug(enabled: bool) -> None:
    """Switch smm_asset logging between DEBUG and WARNING process-wide.

    An application-level helper; the library never calls it. Prefer the
    per-connection debug setting or an injected logger.
    """
    logging.getLogger(_PACKAGE_LOGGER).setLevel(
        logging.DEBUG if enabled else logging.WARNING
    )
