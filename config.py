"""
config.py

Responsibility: Defines the Settings model and resolves it from environment
variables, validating values once at startup.
Does NOT: open connections, configure logging, or hold mutable runtime state.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from exceptions import ConfigLoadError

# Field name -> environment variables consulted in order.
_ENV_MAP: dict[str, tuple[str, ...]] = {
    "provider": ("DNS_PROVIDER",),
    "api_token": ("DNS_API_TOKEN", "DIGITALOCEAN_TOKEN", "CLOUDFLARE_API_TOKEN"),
    "zone": ("DNS_ZONE",),
    "ttl": ("DNS_TTL",),
    "internal_record": ("INTERNAL_DOMAIN",),
    "external_record": ("EXTERNAL_DOMAIN",),
    "resync_interval": ("RESYNC_INTERVAL",),
    "notify_timeout": ("NOTIFY_TIMEOUT",),
    "dry_run": ("DRY_RUN",),
    "kubeconfig": ("KUBECONFIG",),
    "master": ("KUBE_MASTER",),
    "log_level": ("LOG_LEVEL",),
    "host": ("HOST",),
    "port": ("PORT",),
}


class Settings(BaseModel):
    """
    Runtime configuration for nodedns.

    Values are resolved in order:
    1. Explicit values passed to the constructor.
    2. Environment variables (see _ENV_MAP).
    3. Field defaults.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    provider: Literal["digitalocean", "cloudflare"] = Field(
        default="digitalocean", description="DNS provider holding the zone"
    )
    api_token: str = Field(description="Provider API token with DNS write access")
    zone: str = Field(description="DigitalOcean domain name or Cloudflare zone ID")
    ttl: int = Field(default=60, gt=0, description="TTL in seconds for created records")

    # Relative to the zone ("nodes") or fully-qualified ("nodes.example.com")
    internal_record: str = Field(default="", description="Record holding internal addresses")
    external_record: str = Field(default="", description="Record holding external addresses")

    resync_interval: float = Field(
        default=300.0, ge=0, description="Seconds between forced resyncs; 0 disables"
    )
    notify_timeout: float = Field(
        default=10.0, gt=0, description="Seconds each change notification may take"
    )
    dry_run: bool = Field(default=False, description="Compute and log changes without applying")

    kubeconfig: str = Field(default="", description="kubeconfig path when running out of cluster")
    master: str = Field(default="", description="Kubernetes API server URL override")

    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8081, gt=0, lt=65536)

    @model_validator(mode="before")
    @classmethod
    def resolve_from_env(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Fall back to environment variables for missing fields."""
        return resolve_env(values, os.environ)

    @field_validator("provider", mode="before")
    @classmethod
    def lower_provider(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("api_token", "zone")
    @classmethod
    def require_non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


def resolve_env(values: Mapping[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """
    Fills fields missing from `values` with the first set variable in `env`.

    Args:
        values: Explicitly provided field values.
        env: The environment to read from.

    Returns:
        A new dict with environment fallbacks applied.
    """
    resolved = dict(values)
    for field, env_vars in _ENV_MAP.items():
        if resolved.get(field) not in (None, ""):
            continue
        for env_var in env_vars:
            if env.get(env_var):
                resolved[field] = env[env_var]
                break
    return resolved


def load_settings(**overrides: Any) -> Settings:
    """
    Builds Settings from the environment plus explicit overrides.

    Raises:
        ConfigLoadError: If the resulting configuration is invalid.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigLoadError(f"Invalid nodedns configuration: {exc}") from exc
