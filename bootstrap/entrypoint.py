"""
Container entrypoints for the Redis and Sentinel images.

redis:    resolve the topology, then exec redis-server as primary or replica.
sentinel: render sentinel.conf against the first registered Redis peer, then
          exec redis-server --sentinel.

Any fatal condition (missing configuration, unreadable registry) logs a
diagnostic and exits with status 1 before anything is exec'd. Retrying is
left to the container supervisor.

Environment Variables:
    REDIS_HA_MASTER_PASSWORD: Shared Redis password (redis, required)
    REDIS_HA_SENTINEL_MASTER_NAME: Replication group name (sentinel, required)
    REDIS_HA_SENTINEL_QUORUM: Sentinel quorum (sentinel, required)
    REDIS_HA_SENTINEL_PASSWORD: Redis AUTH credential for Sentinel (sentinel, required)
    REDIS_HA_SENTINEL_ADDRESS: Sentinel to consult first (redis, optional)
    REDIS_HA_REPLICATION_PORT: Port replicas replicate from (redis, default: 6379)
    REDIS_HA_PROBE_TIMEOUT: Per-probe connect and read timeout in seconds (default: 2)
    REDIS_HA_METADATA_URL: Rancher Metadata base URL
    DEBUG_MODE: Enable debug logging (default: false)
"""

import argparse
import logging
from typing import List, Optional

from bootstrap.config import load_redis_node_config, load_sentinel_config
from bootstrap.errors import DirectoryUnavailable, MissingConfiguration
from bootstrap.launcher import (
    build_redis_arguments,
    build_sentinel_arguments,
    exec_server,
    masked,
    prepare_sentinel_config,
    sentinel_template_values,
)
from bootstrap.metadata_client import SELF_SERVICE, MetadataDirectoryClient, stack_service
from bootstrap.redis_probe_client import RedisProbeClient
from bootstrap.resolver import LowestIndexResolver, PeerChainResolver, TopologyResolver
from shared.logging_config import setup_logging

logger = logging.getLogger(__name__)

REDIS_COMPONENT = "redis-ha-entrypoint"
SENTINEL_COMPONENT = "redis-ha-sentinel-entrypoint"


def _parse_args(description: str, argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--config",
        default=None,
        help="YAML file with REDIS_HA_* settings (environment variables win)"
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the server command line instead of executing it"
    )
    return parser.parse_args(argv)


def _log_level(debug_mode: bool) -> int:
    return logging.DEBUG if debug_mode else logging.INFO


def _log_local_uuid(directory: MetadataDirectoryClient) -> None:
    """Diagnostics only; a registry hiccup here must not stop the node."""
    try:
        logger.debug(f"Local container uuid: {directory.local_uuid()}")
    except DirectoryUnavailable as e:
        logger.debug(f"Local container uuid unavailable: {e}")


def _launch(args: List[str], dry_run: bool) -> int:
    if dry_run:
        print(" ".join(masked(args)))
        return 0
    exec_server(args)
    return 0


def run_redis_node(argv: Optional[List[str]] = None) -> int:
    """Entrypoint of a Redis data-store container."""
    args = _parse_args("Resolve replication role and launch redis-server", argv)

    try:
        config = load_redis_node_config(config_file=args.config)
    except MissingConfiguration as e:
        setup_logging(REDIS_COMPONENT, log_file=args.log_file)
        logger.error(str(e))
        logger.error("Impossible to enter the Redis replication mode.")
        return 1

    setup_logging(REDIS_COMPONENT, level=_log_level(config.debug_mode), log_file=args.log_file)

    directory = MetadataDirectoryClient(
        metadata_url=config.metadata_url,
        version=config.metadata_version,
        service_path=SELF_SERVICE,
        timeout=config.metadata_timeout_seconds,
    )
    probe = RedisProbeClient(
        password=config.master_password,
        timeout_seconds=config.probe_timeout_seconds,
    )
    if config.failover_detector_configured:
        logger.info(f"Consulting Sentinel {config.sentinel_address} for group '{config.sentinel_master_name}' first")
    elif config.sentinel_address:
        logger.warning("REDIS_HA_SENTINEL_ADDRESS is set without REDIS_HA_SENTINEL_MASTER_NAME; Sentinel is ignored")

    resolver: TopologyResolver = PeerChainResolver(
        directory,
        probe,
        detector_address=config.sentinel_address,
        group_name=config.sentinel_master_name,
    )

    if config.debug_mode:
        _log_local_uuid(directory)

    try:
        topology = resolver.resolve()
        server_args = build_redis_arguments(topology, config)
    except (DirectoryUnavailable, MissingConfiguration) as e:
        logger.error(f"Cannot resolve replication topology: {e}")
        return 1

    return _launch(server_args, args.dry_run)


def run_sentinel(argv: Optional[List[str]] = None) -> int:
    """Entrypoint of a Redis Sentinel container."""
    args = _parse_args("Render sentinel.conf and launch redis-server --sentinel", argv)

    try:
        config = load_sentinel_config(config_file=args.config)
    except MissingConfiguration as e:
        setup_logging(SENTINEL_COMPONENT, log_file=args.log_file)
        logger.error(str(e))
        logger.error("Impossible to initialize the Redis Sentinel.")
        return 1

    setup_logging(SENTINEL_COMPONENT, level=_log_level(config.debug_mode), log_file=args.log_file)

    directory = MetadataDirectoryClient(
        metadata_url=config.metadata_url,
        version=config.metadata_version,
        service_path=stack_service(config.redis_service_name),
        timeout=config.metadata_timeout_seconds,
    )

    try:
        topology = LowestIndexResolver(directory).resolve()
        prepare_sentinel_config(
            config.config_file,
            config.template_file,
            sentinel_template_values(topology, config),
        )
    except (DirectoryUnavailable, MissingConfiguration) as e:
        logger.error(f"Cannot prepare Sentinel: {e}")
        return 1
    except OSError as e:
        logger.error(f"Cannot write Sentinel config {config.config_file}: {e}")
        return 1

    return _launch(build_sentinel_arguments(config), args.dry_run)
