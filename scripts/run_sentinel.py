"""
Sentinel Launcher

Container entrypoint for the Redis Sentinel image.

Renders /etc/redis/sentinel.conf from sentinel.conf.skel (only if it does not
exist yet) pointing at the first registered Redis container, then execs
redis-server --sentinel.

Usage:
    python scripts/run_sentinel.py

Environment Variables:
    REDIS_HA_SENTINEL_MASTER_NAME: Replication group name (required)
    REDIS_HA_SENTINEL_QUORUM: Minimum number of Sentinels agreeing on a failure (required)
    REDIS_HA_SENTINEL_PASSWORD: Redis AUTH credential (required)
    REDIS_HA_REDIS_SERVICE_NAME: Redis service name in the stack (default: redis)
    REDIS_HA_SENTINEL_CONFIG_FILE: Config path (default: /etc/redis/sentinel.conf)
"""
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bootstrap.entrypoint import run_sentinel


if __name__ == "__main__":
    sys.exit(run_sentinel())
