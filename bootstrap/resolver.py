"""
Topology Resolver

Decides, once per container start, which address is the replication primary
and whether the local container is it. There is no coordinator, lock or quorum:
every node runs the same rules against the same registry and usually reaches
the same answer. Concurrent cold starts can still disagree until a restart or
a Sentinel failover settles it.

Rule order for data-store nodes (PeerChainResolver):

1. A configured Sentinel that knows the group wins outright.
2. Otherwise walk the running peers in registration order; the first one that
   answers PING and reports a usable ROLE decides (single witness, no vote).
3. Otherwise the first registered peer is primary, healthy or not.

Sentinel nodes (LowestIndexResolver) only ever apply rule 3.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from bootstrap.errors import DirectoryUnavailable
from bootstrap.models import (
    PeerRecord,
    ProbeResult,
    ReplicationRole,
    ResolvedTopology,
    TopologySource,
)

logger = logging.getLogger(__name__)


class DirectoryClient(Protocol):
    def list_peers(self) -> List[PeerRecord]: ...

    def local_identity(self) -> str: ...


class ProtocolProbe(Protocol):
    def ping(self, address: str) -> bool: ...

    def role(self, address: str) -> ProbeResult: ...

    def query_failover_detector(self, detector_address: str, group_name: str) -> Optional[str]: ...


class TopologyResolver(Protocol):
    """Anything that can produce a ResolvedTopology for the launcher."""

    def resolve(self) -> ResolvedTopology: ...


def first_registered_peer(peers: List[PeerRecord]) -> PeerRecord:
    """Lowest-index entry of the full peer list, whatever its state."""
    if not peers:
        raise DirectoryUnavailable("Registry lists no peers; cannot pick a primary")
    return min(peers, key=lambda peer: peer.index)


class PeerChainResolver:
    """Resolution used by data-store nodes: Sentinel, then peer chain, then fallback."""

    def __init__(
        self,
        directory: DirectoryClient,
        probe: ProtocolProbe,
        detector_address: Optional[str] = None,
        group_name: Optional[str] = None
    ):
        self.directory = directory
        self.probe = probe
        self.detector_address = detector_address
        self.group_name = group_name

    def _ask_failover_detector(self) -> Optional[str]:
        if not (self.detector_address and self.group_name):
            return None
        return self.probe.query_failover_detector(self.detector_address, self.group_name) or None

    def _walk_peer_chain(self, peers: List[PeerRecord]) -> Optional[str]:
        for peer in sorted(peers, key=lambda p: p.index):
            if not peer.running:
                continue

            if not self.probe.ping(peer.address):
                logger.info(f"Peer {peer.index} ({peer.address}) unreachable, trying next")
                continue

            result = self.probe.role(peer.address)

            if result.role is ReplicationRole.PRIMARY:
                logger.info(f"Peer {peer.index} ({peer.address}) reports itself as primary")
                return peer.address

            if result.role is ReplicationRole.REPLICA and result.reported_primary_address:
                logger.info(
                    f"Peer {peer.index} ({peer.address}) replicates from {result.reported_primary_address}"
                )
                return result.reported_primary_address

            logger.info(f"Peer {peer.index} ({peer.address}) role unknown, trying next")

        return None

    def resolve(self) -> ResolvedTopology:
        """
        Run the three rules once and return the decision.

        Raises:
            DirectoryUnavailable: If the registry cannot be read, or lists no
                peers and no Sentinel answered
        """
        local_address = self.directory.local_identity()

        primary = self._ask_failover_detector()
        if primary:
            source = TopologySource.FAILOVER_DETECTOR_REPORT
        else:
            peers = self.directory.list_peers()
            primary = self._walk_peer_chain(peers)
            if primary:
                source = TopologySource.PEER_ROLE_CHAIN
            else:
                fallback = first_registered_peer(peers)
                logger.warning(
                    f"No peer confirmed a role; falling back to first registered peer "
                    f"{fallback.index} ({fallback.address})"
                )
                primary = fallback.address
                source = TopologySource.FALLBACK_FIRST_PEER

        topology = ResolvedTopology.for_local_address(primary, local_address, source)
        logger.info(
            f"Resolved primary={topology.primary_address} local={local_address} "
            f"role={topology.local_role.value} source={topology.source.value}"
        )
        return topology


class LowestIndexResolver:
    """
    Resolution used by Sentinel nodes: the first registered Redis peer is primary.

    No probing and no Sentinel lookup. Kept separate from PeerChainResolver on
    purpose; the two bootstrap paths can pick different primaries after a
    failover (see DESIGN.md).
    """

    def __init__(self, directory: DirectoryClient):
        self.directory = directory

    def resolve(self) -> ResolvedTopology:
        local_address = self.directory.local_identity()
        primary = first_registered_peer(self.directory.list_peers())

        topology = ResolvedTopology.for_local_address(
            primary.address, local_address, TopologySource.FALLBACK_FIRST_PEER
        )
        logger.info(f"Sentinel bootstrap: monitoring first registered peer {primary.address}")
        return topology
