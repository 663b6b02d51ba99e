"""
Value types passed between the directory client, the probe, the resolver and the launcher.

All of them are created once per startup attempt and thrown away after the exec.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import enum


# ============================================================================
# ENUM DEFINITIONS
# ============================================================================

class PeerState(str, enum.Enum):
    """Container state as reported by the registry"""
    RUNNING = "running"
    STOPPED = "stopped"


class ReplicationRole(str, enum.Enum):
    """Replication role of a Redis instance"""
    PRIMARY = "master"
    REPLICA = "slave"
    UNKNOWN = "unknown"


class TopologySource(str, enum.Enum):
    """Which rule produced the primary address"""
    FAILOVER_DETECTOR_REPORT = "failover_detector_report"
    PEER_ROLE_CHAIN = "peer_role_chain"
    FALLBACK_FIRST_PEER = "fallback_first_peer"


# ============================================================================
# VALUE TYPES
# ============================================================================

@dataclass(frozen=True)
class PeerRecord:
    index: int
    address: str
    state: PeerState

    @property
    def running(self) -> bool:
        return self.state is PeerState.RUNNING


@dataclass(frozen=True)
class ProbeResult:
    reachable: bool
    role: ReplicationRole = ReplicationRole.UNKNOWN
    reported_primary_address: Optional[str] = None


@dataclass(frozen=True)
class ResolvedTopology:
    """
    Outcome of one resolution run.

    local_role is only ever PRIMARY or REPLICA; it is derived from comparing the
    local address with primary_address, never probed.
    """
    primary_address: str
    local_role: ReplicationRole
    source: TopologySource

    @classmethod
    def for_local_address(
        cls,
        primary_address: str,
        local_address: str,
        source: TopologySource,
    ) -> "ResolvedTopology":
        role = ReplicationRole.PRIMARY if primary_address == local_address else ReplicationRole.REPLICA
        return cls(primary_address=primary_address, local_role=role, source=source)

    @property
    def is_primary(self) -> bool:
        return self.local_role is ReplicationRole.PRIMARY
