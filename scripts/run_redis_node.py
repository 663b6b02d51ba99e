"""
Redis Node Launcher

Container entrypoint for the Redis data-store image.

Resolves whether this container is the replication primary or a replica
(Sentinel first, then the peer chain, then the first registered peer) and
execs redis-server accordingly.

Usage:
    python scripts/run_redis_node.py
    python scripts/run_redis_node.py --config /etc/redis-ha.yaml --dry-run

Environment Variables:
    REDIS_HA_MASTER_PASSWORD: Shared Redis password (required)
    REDIS_HA_SENTINEL_ADDRESS: Sentinel to consult first (optional)
    REDIS_HA_SENTINEL_MASTER_NAME: Replication group name known to Sentinel (optional)
    DEBUG_MODE: Enable debug logging (default: false)
"""
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bootstrap.entrypoint import run_redis_node


if __name__ == "__main__":
    sys.exit(run_redis_node())
