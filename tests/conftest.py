"""
Shared fixtures: in-memory stand-ins for the registry and the Redis probe.
"""
import os
import sys
from typing import Dict, List, Optional

import pytest

# Add project root to path
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from bootstrap.models import PeerRecord, PeerState, ProbeResult, ReplicationRole


def running(index: int, address: str) -> PeerRecord:
    return PeerRecord(index=index, address=address, state=PeerState.RUNNING)


def stopped(index: int, address: str) -> PeerRecord:
    return PeerRecord(index=index, address=address, state=PeerState.STOPPED)


class FakeDirectory:
    def __init__(self, peers: List[PeerRecord], local_address: str):
        self.peers = peers
        self.local_address = local_address
        self.list_calls = 0

    def list_peers(self) -> List[PeerRecord]:
        self.list_calls += 1
        return list(self.peers)

    def local_identity(self) -> str:
        return self.local_address


class FakeProbe:
    """
    Scripted probe.

    alive: addresses answering PING
    roles: ROLE result per address (missing → UNKNOWN)
    detector: Sentinel answer, or None
    """

    def __init__(
        self,
        alive=(),
        roles: Optional[Dict[str, ProbeResult]] = None,
        detector: Optional[str] = None
    ):
        self.alive = set(alive)
        self.roles = roles or {}
        self.detector = detector
        self.calls = []

    def ping(self, address: str) -> bool:
        self.calls.append(("ping", address))
        return address in self.alive

    def role(self, address: str) -> ProbeResult:
        self.calls.append(("role", address))
        return self.roles.get(address, ProbeResult(reachable=True))

    def query_failover_detector(self, detector_address: str, group_name: str) -> Optional[str]:
        self.calls.append(("sentinel", detector_address, group_name))
        return self.detector


def primary(address: str) -> ProbeResult:
    return ProbeResult(reachable=True, role=ReplicationRole.PRIMARY, reported_primary_address=address)


def replica_of(address: str) -> ProbeResult:
    return ProbeResult(reachable=True, role=ReplicationRole.REPLICA, reported_primary_address=address)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every REDIS_HA_* / DEBUG_MODE variable from the process environment."""
    for key in list(os.environ):
        if key.startswith("REDIS_HA_") or key == "DEBUG_MODE":
            monkeypatch.delenv(key, raising=False)
    return monkeypatch
