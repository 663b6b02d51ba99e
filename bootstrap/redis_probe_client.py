"""
Redis Probe Client

Short-lived redis-py connections to peers for the three questions the resolver
asks: is the peer alive (AUTH + PING), what replication role does it report
(ROLE), and which primary does the Sentinel currently know about
(SENTINEL get-master-addr-by-name).

None of the public methods raise. Transport errors and unparseable replies are
logged and turned into False / UNKNOWN / None so the resolver can move on to
the next candidate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence
import logging

import redis
from redis.backoff import NoBackoff
from redis.retry import Retry

from bootstrap.config import REDIS_PORT, SENTINEL_PORT
from bootstrap.errors import MalformedProtocolReply, ProbeUnreachable
from bootstrap.models import ProbeResult, ReplicationRole

logger = logging.getLogger(__name__)


def split_address(address: str, default_port: int) -> tuple[str, int]:
    """Split ``host`` or ``host:port`` into a (host, port) pair."""
    address = address.strip()

    if address.startswith("["):
        host, _, rest = address[1:].partition("]")
        port = rest.lstrip(":")
        return host, int(port) if port.isdigit() else default_port

    if address.count(":") == 1:
        host, port = address.split(":")
        if port.isdigit():
            return host, int(port)

    return address, default_port


def reply_lines(reply: Any) -> List[str]:
    """Flatten a decoded reply into one string per element, like redis-cli prints it."""
    lines = []
    pending = [reply]

    while pending:
        item = pending.pop()
        if item is None:
            continue
        if isinstance(item, (list, tuple)):
            pending.extend(reversed(item))
        elif isinstance(item, bytes):
            lines.append(item.decode("utf-8", errors="replace"))
        else:
            lines.append(str(item))

    return lines


def parse_role_reply(lines: Sequence[str], address: str) -> ProbeResult:
    """
    Interpret the flattened ROLE reply of a reachable peer.

    ``master`` means the peer itself is primary. ``slave`` carries the
    address the peer replicates from on the second line. Anything else is
    reported as UNKNOWN.

    Raises:
        MalformedProtocolReply: If the reply has no usable role token
    """
    if not lines:
        raise MalformedProtocolReply(f"Empty ROLE reply from {address}")

    token = str(lines[0]).strip().lower()

    if token == ReplicationRole.PRIMARY.value:
        return ProbeResult(reachable=True, role=ReplicationRole.PRIMARY, reported_primary_address=address)

    if token == ReplicationRole.REPLICA.value:
        if len(lines) < 2 or not str(lines[1]).strip():
            raise MalformedProtocolReply(f"ROLE reply from {address} has no primary address")
        return ProbeResult(
            reachable=True,
            role=ReplicationRole.REPLICA,
            reported_primary_address=str(lines[1]).strip(),
        )

    raise MalformedProtocolReply(f"Unexpected ROLE token {token!r} from {address}")


@dataclass
class RedisProbeClient:
    password: Optional[str] = None
    timeout_seconds: float = 2.0
    default_port: int = REDIS_PORT
    sentinel_port: int = SENTINEL_PORT

    def _connect(self, address: str, password: Optional[str], default_port: Optional[int] = None) -> redis.Redis:
        """One-shot client: no pooling reuse, no retries, bounded connect and read."""
        host, port = split_address(address, default_port or self.default_port)
        return redis.Redis(
            host=host,
            port=port,
            password=password or None,
            socket_timeout=self.timeout_seconds,
            socket_connect_timeout=self.timeout_seconds,
            decode_responses=True,
            encoding_errors="replace",
            retry=Retry(NoBackoff(), 0),
            lib_name=None,
            lib_version=None,
        )

    def _call(self, client: redis.Redis, address: str, method, *args) -> Any:
        """
        Run one client call and translate redis-py failures.

        Raises:
            ProbeUnreachable: Connect/read failure or timeout
            MalformedProtocolReply: Rejected AUTH, error reply or unparseable reply
        """
        try:
            return method(*args)
        except redis.exceptions.AuthenticationError as e:
            raise MalformedProtocolReply(f"{address} rejected AUTH: {e}") from e
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as e:
            raise ProbeUnreachable(f"Cannot talk to {address}: {e}") from e
        except redis.exceptions.RedisError as e:
            raise MalformedProtocolReply(f"Unusable reply from {address}: {e}") from e
        except RecursionError as e:
            raise MalformedProtocolReply(f"Reply from {address} is nested too deeply") from e
        finally:
            client.close()

    def ping(self, address: str) -> bool:
        client = self._connect(address, self.password)
        try:
            alive = self._call(client, address, client.ping)
        except (ProbeUnreachable, MalformedProtocolReply) as e:
            logger.warning(f"Ping {address} failed: {e}")
            return False

        if not alive:
            logger.warning(f"Ping {address} got an unexpected reply")
        return bool(alive)

    def role(self, address: str) -> ProbeResult:
        client = self._connect(address, self.password)
        try:
            reply = self._call(client, address, client.execute_command, "ROLE")
        except ProbeUnreachable as e:
            logger.warning(f"Role query to {address} failed: {e}")
            return ProbeResult(reachable=False)
        except MalformedProtocolReply as e:
            logger.warning(f"Role query to {address} unusable: {e}")
            return ProbeResult(reachable=True)

        try:
            result = parse_role_reply(reply_lines(reply), address)
        except MalformedProtocolReply as e:
            logger.warning(str(e))
            return ProbeResult(reachable=True)

        logger.debug(f"Role of {address}: {result.role.value} (primary={result.reported_primary_address})")
        return result

    def query_failover_detector(self, detector_address: str, group_name: str) -> Optional[str]:
        """
        Ask a Sentinel for the current primary of ``group_name``.

        Sentinels are queried without AUTH. Returns the primary host, or None
        when the Sentinel is absent, does not know the group, or answers with
        something unexpected.
        """
        client = self._connect(detector_address, None, default_port=self.sentinel_port)
        try:
            reply = self._call(
                client,
                detector_address,
                client.execute_command,
                "SENTINEL", "get-master-addr-by-name", group_name,
            )
        except (ProbeUnreachable, MalformedProtocolReply) as e:
            logger.info(f"Sentinel {detector_address} gave no answer for '{group_name}': {e}")
            return None

        lines = reply_lines(reply)
        if not lines or not lines[0].strip():
            logger.info(f"Sentinel {detector_address} does not know group '{group_name}'")
            return None

        host = lines[0].strip()
        logger.debug(f"Sentinel {detector_address} reports primary {host} for '{group_name}'")
        return host
