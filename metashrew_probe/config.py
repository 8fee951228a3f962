"""Shared configuration loader for the Metashrew probe tooling."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".metashrew.yaml"

# Recognised endpoint aliases; anything else must be a full URL.
ENDPOINT_ALIASES: dict[str, str] = {
    "local": "http://localhost:8080",
    "production": "https://mainnet.sandshrew.io/v2/lasereyes",
}
DEFAULT_ENDPOINT = "production"
DEFAULT_TIMEOUT = 15.0


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for a Metashrew/Sandshrew JSON-RPC endpoint."""

    url: str = ENDPOINT_ALIASES[DEFAULT_ENDPOINT]
    timeout: float = DEFAULT_TIMEOUT
    endpoint_name: str | None = DEFAULT_ENDPOINT

    @classmethod
    def for_endpoint(cls, endpoint: str, timeout: float = DEFAULT_TIMEOUT) -> "ClientConfig":
        url, name = resolve_endpoint(endpoint)
        return cls(url=url, timeout=timeout, endpoint_name=name)


def resolve_endpoint(raw: str) -> tuple[str, str | None]:
    """Return ``(url, alias)`` for an alias name or a literal endpoint URL."""

    candidate = raw.strip()
    alias = candidate.lower()
    if alias in ENDPOINT_ALIASES:
        return ENDPOINT_ALIASES[alias], alias
    parsed = urlparse(candidate)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        known = ", ".join(sorted(ENDPOINT_ALIASES))
        raise ConfigurationError(
            f"Invalid endpoint {raw!r}: expected an http(s) URL or one of: {known}"
        )
    return candidate.rstrip("/"), None


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with an 'rpc' section")
    return loaded


def _coerce_timeout(raw: Any, *, source: str) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        timeout = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid timeout in {source}: {raw}") from exc
    if timeout <= 0:
        raise ConfigurationError(f"Timeout in {source} must be positive, got {raw}")
    return timeout


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value:
            return value
    return default


def load_client_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ClientConfig:
    """Load client configuration from overrides, environment variables and optional YAML.

    ``overrides`` wins over the environment, which wins over the ``rpc``
    section of the YAML file. ``endpoint`` values may be an alias from
    :data:`ENDPOINT_ALIASES` or a full URL.
    """

    env_map = os.environ if env is None else env
    explicit_path = config_path is not None
    path = Path(config_path).expanduser() if explicit_path else DEFAULT_CONFIG_PATH

    file_config = _load_config_file(path, required=explicit_path)
    rpc_section = file_config.get("rpc") or {}
    if not isinstance(rpc_section, dict):
        raise ConfigurationError(f"Expected 'rpc' to be a mapping in {path}")

    override_map = dict(overrides or {})

    if env_map.get("SANDSHREW_PROJECT_ID"):
        # The service is less reliable when the project id header is present.
        logger.warning("SANDSHREW_PROJECT_ID is set but will not be sent to the endpoint")

    endpoint = _first_value(
        override_map.get("endpoint"),
        env_map.get("METASHREW_API_URL"),
        env_map.get("METASHREW_ENDPOINT"),
        rpc_section.get("endpoint"),
        default=DEFAULT_ENDPOINT,
    )
    url, alias = resolve_endpoint(str(endpoint))

    timeout = _first_value(
        _coerce_timeout(override_map.get("timeout"), source="overrides"),
        _coerce_timeout(env_map.get("METASHREW_TIMEOUT"), source="environment"),
        _coerce_timeout(rpc_section.get("timeout"), source=f"{path} rpc.timeout"),
        default=DEFAULT_TIMEOUT,
    )

    return ClientConfig(url=url, timeout=timeout, endpoint_name=alias)
