"""
Bootstrap configuration.

Each entrypoint reads one pydantic model, validated in a single pass so every
missing or malformed variable is reported together. Values come from an
optional YAML file first and the process environment second; empty strings
count as unset.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bootstrap.errors import MissingConfiguration


REDIS_PORT = 6379
SENTINEL_PORT = 26379

DEFAULT_METADATA_URL = "http://rancher-metadata.rancher.internal"
DEFAULT_METADATA_VERSION = "2016-07-29"
DEFAULT_SENTINEL_CONFIG_FILE = "/etc/redis/sentinel.conf"

_TRUTHY = {"true", "1", "yes", "on"}


class _EntrypointConfig(BaseModel):
    """Settings shared by the Redis and Sentinel entrypoints."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    metadata_url: str = Field(default=DEFAULT_METADATA_URL, alias="REDIS_HA_METADATA_URL", min_length=1)
    metadata_version: str = Field(default=DEFAULT_METADATA_VERSION, alias="REDIS_HA_METADATA_VERSION", min_length=1)
    metadata_timeout_seconds: float = Field(default=5.0, alias="REDIS_HA_METADATA_TIMEOUT", gt=0)
    probe_timeout_seconds: float = Field(default=2.0, alias="REDIS_HA_PROBE_TIMEOUT", gt=0)
    server_binary: str = Field(default="redis-server", alias="REDIS_HA_SERVER_BINARY", min_length=1)
    debug_mode: bool = Field(default=False, alias="DEBUG_MODE")


class RedisNodeConfig(_EntrypointConfig):
    """Configuration of a data-store (redis-server) node"""

    master_password: str = Field(alias="REDIS_HA_MASTER_PASSWORD", min_length=1)
    sentinel_address: Optional[str] = Field(default=None, alias="REDIS_HA_SENTINEL_ADDRESS")
    sentinel_master_name: Optional[str] = Field(default=None, alias="REDIS_HA_SENTINEL_MASTER_NAME")
    replication_port: int = Field(default=REDIS_PORT, alias="REDIS_HA_REPLICATION_PORT", ge=1, le=65535)

    @property
    def failover_detector_configured(self) -> bool:
        return bool(self.sentinel_address and self.sentinel_master_name)


class SentinelConfig(_EntrypointConfig):
    """Configuration of a failover-detector (redis-sentinel) node"""

    master_name: str = Field(alias="REDIS_HA_SENTINEL_MASTER_NAME", min_length=1)
    quorum: int = Field(alias="REDIS_HA_SENTINEL_QUORUM", ge=1)
    sentinel_password: str = Field(alias="REDIS_HA_SENTINEL_PASSWORD", min_length=1)
    redis_service_name: str = Field(default="redis", alias="REDIS_HA_REDIS_SERVICE_NAME", min_length=1)
    config_file: str = Field(default=DEFAULT_SENTINEL_CONFIG_FILE, alias="REDIS_HA_SENTINEL_CONFIG_FILE", min_length=1)

    @property
    def template_file(self) -> str:
        return f"{self.config_file}.skel"


def _load_yaml(config_file: str) -> dict[str, Any]:
    path = Path(config_file)
    try:
        with path.open("r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise MissingConfiguration({str(path): "config file not found"})
    except yaml.YAMLError as e:
        raise MissingConfiguration({str(path): f"invalid YAML: {e}"})

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MissingConfiguration({str(path): "top level must be a mapping of variable names"})
    # Scalars become strings like environment values; booleans stay for DEBUG_MODE
    return {
        str(key): value if isinstance(value, bool) else str(value)
        for key, value in data.items()
        if value is not None
    }


def _merge_sources(environ: Mapping[str, str], config_file: Optional[str]) -> dict[str, Any]:
    sources: list[Mapping[str, Any]] = [environ]
    if config_file:
        sources.insert(0, _load_yaml(config_file))

    raw: dict[str, Any] = {}
    for source in sources:
        for key, value in source.items():
            if value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
                if not value:
                    continue
            raw[key] = value

    debug = raw.get("DEBUG_MODE")
    if isinstance(debug, str):
        raw["DEBUG_MODE"] = debug.lower() in _TRUTHY
    return raw


def _describe(error: dict[str, Any]) -> tuple[str, str]:
    field = ".".join(str(part) for part in error.get("loc", ())) or "configuration"
    if error.get("type") == "missing":
        return field, "is not set"
    return field, error.get("msg", "is invalid")


def _validate(model: type[BaseModel], raw: dict[str, Any]) -> Any:
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        problems = dict(_describe(error) for error in e.errors())
        raise MissingConfiguration(problems) from e


def load_redis_node_config(
    environ: Optional[Mapping[str, str]] = None,
    config_file: Optional[str] = None,
) -> RedisNodeConfig:
    """
    Build the data-store node configuration.

    Raises:
        MissingConfiguration: listing every absent or invalid variable
    """
    raw = _merge_sources(os.environ if environ is None else environ, config_file)
    return _validate(RedisNodeConfig, raw)


def load_sentinel_config(
    environ: Optional[Mapping[str, str]] = None,
    config_file: Optional[str] = None,
) -> SentinelConfig:
    """
    Build the failover-detector node configuration.

    Raises:
        MissingConfiguration: listing every absent or invalid variable
    """
    raw = _merge_sources(os.environ if environ is None else environ, config_file)
    return _validate(SentinelConfig, raw)
