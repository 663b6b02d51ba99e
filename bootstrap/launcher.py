"""
Bootstrap Launcher

Turns a ResolvedTopology into a redis-server command line, renders the
Sentinel config file, and finally replaces the current process with the
server. Everything that can fail is checked before exec_server is called.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from string import Template
from typing import List, Mapping

from bootstrap.config import RedisNodeConfig, SentinelConfig
from bootstrap.errors import MissingConfiguration
from bootstrap.models import ResolvedTopology
from shared.logging_config import flush_logging

logger = logging.getLogger(__name__)

SENTINEL_CONFIG_MODE = 0o640

SENTINEL_PLACEHOLDERS = (
    "REDIS_HA_SENTINEL_MASTER_NAME",
    "REDIS_HA_SENTINEL_MASTER_HOSTNAME",
    "REDIS_HA_SENTINEL_QUORUM",
    "REDIS_HA_SENTINEL_PASSWORD",
)

_SECRET_FLAGS = {"--requirepass", "--masterauth"}


def build_redis_arguments(topology: ResolvedTopology, config: RedisNodeConfig) -> List[str]:
    """
    Build the redis-server argv for the resolved role.

    Both roles serve with the shared password and use it to authenticate
    to the primary; replicas additionally get a --slaveof directive.
    """
    args = [
        config.server_binary,
        "--requirepass", config.master_password,
        "--masterauth", config.master_password,
    ]

    if not topology.is_primary:
        if not topology.primary_address:
            raise MissingConfiguration({"primary_address": "replica launch needs a resolved primary"})
        args += ["--slaveof", topology.primary_address, str(config.replication_port)]

    return args


def sentinel_template_values(topology: ResolvedTopology, config: SentinelConfig) -> dict[str, str]:
    return {
        "REDIS_HA_SENTINEL_MASTER_NAME": config.master_name,
        "REDIS_HA_SENTINEL_MASTER_HOSTNAME": topology.primary_address,
        "REDIS_HA_SENTINEL_QUORUM": str(config.quorum),
        "REDIS_HA_SENTINEL_PASSWORD": config.sentinel_password,
    }


def render_template(text: str, values: Mapping[str, str]) -> str:
    """
    Substitute the Sentinel placeholders in ``text``.

    Only the four known names are replaced; any other ``$NAME`` or
    ``${NAME}`` is left as written.
    """
    known = {name: values[name] for name in SENTINEL_PLACEHOLDERS if name in values}
    return Template(text).safe_substitute(known)


def prepare_sentinel_config(
    config_path: str,
    template_path: str,
    values: Mapping[str, str]
) -> bool:
    """
    Render the Sentinel config from its template, once.

    An existing config file is never touched: Sentinel rewrites it at runtime
    with the current primary and known peers. The file mode is reset to 0640
    either way.

    Returns:
        True if the file was generated, False if it already existed

    Raises:
        MissingConfiguration: If the config must be generated and the template is missing
    """
    target = Path(config_path)
    generated = False

    if not target.exists():
        template = Path(template_path)
        if not template.is_file():
            raise MissingConfiguration({str(template): "Sentinel config template not found"})

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(render_template(template.read_text(), values))
        generated = True
        logger.info(f"Generated Sentinel config {target} from {template}")
    else:
        logger.info(f"Sentinel config {target} already exists, keeping it")

    target.chmod(SENTINEL_CONFIG_MODE)
    return generated


def build_sentinel_arguments(config: SentinelConfig) -> List[str]:
    return [config.server_binary, config.config_file, "--sentinel"]


def masked(args: List[str]) -> List[str]:
    """Copy of argv with secret values replaced, for logging."""
    out = []
    hide_next = False
    for arg in args:
        out.append("******" if hide_next else arg)
        hide_next = arg in _SECRET_FLAGS
    return out


def exec_server(args: List[str]) -> None:
    """Replace the current process with ``args``. Never returns on success."""
    logger.info(f"Executing: {' '.join(masked(args))}")
    flush_logging()
    os.execvp(args[0], args)
