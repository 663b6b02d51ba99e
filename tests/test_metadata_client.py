"""
Tests for the Rancher Metadata client using a fake requests session.
"""
import pytest
import requests

from bootstrap.errors import DirectoryUnavailable
from bootstrap.metadata_client import SELF_SERVICE, MetadataDirectoryClient, stack_service
from bootstrap.models import PeerState

BASE = "http://rancher-metadata.rancher.internal/2016-07-29"


class FakeResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    def __init__(self, resources):
        self.resources = resources
        self.requested = []

    def get(self, url, headers=None, timeout=None):
        self.requested.append((url, timeout))
        value = self.resources.get(url)
        if isinstance(value, Exception):
            raise value
        if value is None:
            return FakeResponse("Not found", status_code=404)
        return FakeResponse(value)


def service_resources(prefix, members):
    resources = {
        f"{BASE}/{prefix}/containers": "\n".join(f"{i}=redis-ha_redis_{i + 1}" for i, _, _ in members) + "\n",
        f"{BASE}/self/container/primary_ip": "10.42.0.2",
        f"{BASE}/self/container/uuid": "319af1b9-feb7-448d-8dec-7c42c2a1e9ad",
    }
    for index, state, ip in members:
        resources[f"{BASE}/{prefix}/containers/{index}/state"] = state
        resources[f"{BASE}/{prefix}/containers/{index}/primary_ip"] = ip
    return resources


def test_list_peers_keeps_order_and_stopped_members():
    session = FakeSession(service_resources(SELF_SERVICE, [
        (1, "stopped", "10.42.0.2"),
        (0, "running", "10.42.0.1"),
        (2, "running", "10.42.0.3"),
    ]))
    client = MetadataDirectoryClient(session=session, timeout=3)

    peers = client.list_peers()

    assert [(p.index, p.address, p.state) for p in peers] == [
        (0, "10.42.0.1", PeerState.RUNNING),
        (1, "10.42.0.2", PeerState.STOPPED),
        (2, "10.42.0.3", PeerState.RUNNING),
    ]
    assert all(timeout == 3 for _, timeout in session.requested)


def test_transitional_states_count_as_stopped():
    session = FakeSession(service_resources(SELF_SERVICE, [(0, "starting", "10.42.0.1")]))

    peers = MetadataDirectoryClient(session=session).list_peers()

    assert peers[0].state is PeerState.STOPPED


def test_sentinel_reads_sibling_service():
    prefix = stack_service("redis")
    session = FakeSession(service_resources(prefix, [(0, "running", "10.42.0.1")]))

    peers = MetadataDirectoryClient(service_path=prefix, session=session).list_peers()

    assert peers[0].address == "10.42.0.1"
    assert session.requested[0][0] == f"{BASE}/self/stack/services/redis/containers"


def test_local_identity_and_uuid():
    session = FakeSession(service_resources(SELF_SERVICE, []))
    client = MetadataDirectoryClient(session=session)

    assert client.local_identity() == "10.42.0.2"
    assert client.local_uuid() == "319af1b9-feb7-448d-8dec-7c42c2a1e9ad"


def test_custom_url_and_version():
    session = FakeSession({"http://metadata.local/latest/self/container/primary_ip": "10.0.0.1\n"})
    client = MetadataDirectoryClient(metadata_url="http://metadata.local/", version="latest", session=session)

    assert client.local_identity() == "10.0.0.1"


def test_http_error_is_directory_unavailable():
    client = MetadataDirectoryClient(session=FakeSession({}))

    with pytest.raises(DirectoryUnavailable):
        client.local_identity()


def test_timeout_is_directory_unavailable():
    session = FakeSession({f"{BASE}/self/container/primary_ip": requests.Timeout("read timed out")})

    with pytest.raises(DirectoryUnavailable) as exc_info:
        MetadataDirectoryClient(session=session).local_identity()

    assert isinstance(exc_info.value.__cause__, requests.Timeout)


def test_empty_body_is_directory_unavailable():
    session = FakeSession({f"{BASE}/self/container/primary_ip": "  \n"})

    with pytest.raises(DirectoryUnavailable):
        MetadataDirectoryClient(session=session).local_identity()


def test_malformed_listing_is_directory_unavailable():
    session = FakeSession({f"{BASE}/self/service/containers": "first=redis_1\n"})

    with pytest.raises(DirectoryUnavailable):
        MetadataDirectoryClient(session=session).list_peers()
