"""
Rancher Metadata Client

Read-only client for the Rancher Metadata service. Used by both entrypoints on
startup to list the members of the Redis service and to learn the local
container's identity.

Every resource is a plain-text GET on a version-qualified path, e.g.
``http://rancher-metadata.rancher.internal/2016-07-29/self/container/primary_ip``.
"""

import logging
from typing import List, Optional

import requests

from bootstrap.config import DEFAULT_METADATA_URL, DEFAULT_METADATA_VERSION
from bootstrap.errors import DirectoryUnavailable
from bootstrap.models import PeerRecord, PeerState

logger = logging.getLogger(__name__)

SELF_SERVICE = "self/service"


def stack_service(service_name: str) -> str:
    """Resource prefix of a sibling service in the local stack."""
    return f"self/stack/services/{service_name}"


class MetadataDirectoryClient:
    """
    Client for the Rancher Metadata registry.

    Usage:
        client = MetadataDirectoryClient(
            metadata_url="http://rancher-metadata.rancher.internal",
            service_path=SELF_SERVICE,
        )

        peers = client.list_peers()
        me = client.local_identity()
    """

    def __init__(
        self,
        metadata_url: str = DEFAULT_METADATA_URL,
        version: str = DEFAULT_METADATA_VERSION,
        service_path: str = SELF_SERVICE,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize metadata client.

        Args:
            metadata_url: Metadata service base URL
            version: API version segment ('2015-12-19', '2016-07-29', 'latest')
            service_path: Resource prefix of the service whose containers are the peers
            timeout: Per-request timeout in seconds
            session: Optional requests session (tests inject a fake transport here)
        """
        self.base_url = f"{metadata_url.rstrip('/')}/{version.strip('/')}"
        self.service_path = service_path.strip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, resource: str) -> str:
        """GET one resource as text; any failure is DirectoryUnavailable"""
        url = f"{self.base_url}/{resource.lstrip('/')}"

        try:
            response = self.session.get(url, headers={"Accept": "text/plain"}, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            logger.error(f"Metadata request failed: HTTP {e.response.status_code} for {url}")
            raise DirectoryUnavailable(f"HTTP {e.response.status_code} from {url}") from e
        except requests.RequestException as e:
            logger.error(f"Metadata request failed: {e}")
            raise DirectoryUnavailable(f"Cannot read {url}: {e}") from e

        value = response.text.strip()
        if not value:
            raise DirectoryUnavailable(f"Empty response from {url}")

        logger.debug(f"GET {url} -> {value!r}")
        return value

    def _container_indexes(self) -> List[int]:
        """
        Parse the container listing of the service.

        The listing has one ``index=name`` line per member, e.g.::

            0=redis-ha_redis_1
            1=redis-ha_redis_2
        """
        listing = self._get(f"{self.service_path}/containers")
        indexes = []

        for line in listing.splitlines():
            line = line.strip()
            if not line:
                continue
            head = line.split("=", 1)[0]
            try:
                indexes.append(int(head))
            except ValueError as e:
                raise DirectoryUnavailable(f"Malformed container listing line: {line!r}") from e

        return sorted(indexes)

    def list_peers(self) -> List[PeerRecord]:
        """
        Enumerate every member of the service in registration order.

        Stopped members are included; callers decide how to filter them.

        Raises:
            DirectoryUnavailable: On any registry failure
        """
        peers = []

        for index in self._container_indexes():
            prefix = f"{self.service_path}/containers/{index}"
            raw_state = self._get(f"{prefix}/state").lower()
            address = self._get(f"{prefix}/primary_ip")

            state = PeerState.RUNNING if raw_state == PeerState.RUNNING.value else PeerState.STOPPED
            if state is PeerState.STOPPED and raw_state != PeerState.STOPPED.value:
                logger.debug(f"Peer {index} in state '{raw_state}' treated as stopped")

            peers.append(PeerRecord(index=index, address=address, state=state))

        logger.info(f"Registry lists {len(peers)} peer(s) under {self.service_path}: "
                    + ", ".join(f"{p.index}={p.address}({p.state.value})" for p in peers))
        return peers

    def local_identity(self) -> str:
        """Return this container's primary IP address"""
        return self._get("self/container/primary_ip")

    def local_uuid(self) -> str:
        """Return this container's UUID"""
        return self._get("self/container/uuid")
