import abc
import logging
import threading
from datetime import datetime, timedelta

import requests
from mini_warehouse.common.errors import MembershipServiceError
from mini_warehouse.common.models import ComputeNode
from mini_warehouse.common.utils import _utc_now, capped_timeout
from pydantic import ValidationError

logger = logging.getLogger("")


class NodeDirectory(abc.ABC):
    """Read-only view of the heartbeat subsystem's node table."""

    @abc.abstractmethod
    def lookup(
        self, node_id: int, timeout_seconds: float | None = None
    ) -> ComputeNode | None:
        """Return the current descriptor of `node_id`, or None if unknown."""
        ...


class HttpNodeDirectory(NodeDirectory):
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def lookup(
        self, node_id: int, timeout_seconds: float | None = None
    ) -> ComputeNode | None:
        url = f"{self.base_url}/nodes/{node_id}"
        try:
            r = self.session.get(
                url, timeout=capped_timeout(self.timeout_seconds, timeout_seconds)
            )
        except requests.RequestException as e:
            raise MembershipServiceError(
                f"Node directory unreachable for node {node_id}: {e}"
            ) from e

        if r.status_code == 404:
            return None
        if r.status_code >= 400:
            raise MembershipServiceError(
                f"Node directory returned {r.status_code} for node {node_id}: {r.text}"
            )

        try:
            return ComputeNode.from_dict(r.json())
        except (ValueError, TypeError, ValidationError) as e:
            raise MembershipServiceError(
                f"Invalid node directory response for node {node_id}: {r.text}"
            ) from e


class _NodeEntry:
    def __init__(self, node_id: int, host: str | None, alive: bool):
        self.node_id = node_id
        self.host = host
        self.alive = alive
        self.last_seen: datetime = _utc_now()


class InMemoryNodeDirectory(NodeDirectory):
    """
    Node table kept in process, fed through `upsert`/`heartbeat` the way the
    heartbeat subsystem feeds the real one. With `ttl_seconds`, a node that
    has not heartbeated within the TTL reads as not alive.
    """

    def __init__(self, ttl_seconds: float | None = None):
        self.ttl = None if ttl_seconds is None else timedelta(seconds=ttl_seconds)
        self._lock = threading.Lock()
        self._nodes: dict[int, _NodeEntry] = {}

    def upsert(self, node_id: int, host: str | None = None, alive: bool = True) -> None:
        with self._lock:
            self._nodes[node_id] = _NodeEntry(
                node_id, host.rstrip("/") if host else None, alive
            )

    def heartbeat(self, node_id: int, alive: bool | None = None) -> None:
        with self._lock:
            if node_id not in self._nodes:
                raise KeyError(node_id)
            entry = self._nodes[node_id]
            entry.last_seen = _utc_now()
            if alive is not None:
                entry.alive = alive

    def set_alive(self, node_id: int, alive: bool) -> None:
        with self._lock:
            if node_id not in self._nodes:
                raise KeyError(node_id)
            self._nodes[node_id].alive = alive

    def remove(self, node_id: int) -> None:
        with self._lock:
            self._nodes.pop(node_id, None)

    def lookup(
        self, node_id: int, timeout_seconds: float | None = None
    ) -> ComputeNode | None:
        with self._lock:
            entry = self._nodes.get(node_id)
            if entry is None:
                return None
            alive = entry.alive
            if self.ttl is not None and (_utc_now() - entry.last_seen) > self.ttl:
                alive = False
            return ComputeNode(
                id=entry.node_id,
                alive=alive,
                host=entry.host,
                last_heartbeat=entry.last_seen,
            )
