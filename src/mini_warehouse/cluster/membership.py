import abc
import logging
import threading
from typing import Any

import requests
from mini_warehouse.common.errors import MembershipServiceError
from mini_warehouse.common.utils import capped_timeout

logger = logging.getLogger("")


class MembershipResolver(abc.ABC):
    """Source of the node ids currently assigned to a worker group."""

    @abc.abstractmethod
    def resolve_node_ids(
        self, worker_group_id: int, timeout_seconds: float | None = None
    ) -> list[int]:
        """
        Query the membership service for `worker_group_id`.

        Every call goes to the service; nothing is cached. Raises
        `MembershipServiceError` when the service cannot answer.
        """
        ...


class HttpMembershipResolver(MembershipResolver):
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def resolve_node_ids(
        self, worker_group_id: int, timeout_seconds: float | None = None
    ) -> list[int]:
        url = f"{self.base_url}/worker_groups/{worker_group_id}/workers"
        logger.debug(f"Resolving worker group {worker_group_id}: GET {url}")
        try:
            r = self.session.get(
                url, timeout=capped_timeout(self.timeout_seconds, timeout_seconds)
            )
        except requests.RequestException as e:
            raise MembershipServiceError(
                f"Membership service unreachable for worker group {worker_group_id}: {e}"
            ) from e

        if r.status_code >= 400:
            raise MembershipServiceError(
                f"Membership service returned {r.status_code} for worker group "
                f"{worker_group_id}: {r.text}"
            )

        try:
            body: Any = r.json()
            return [int(i) for i in body["worker_ids"]]
        except (ValueError, KeyError, TypeError) as e:
            raise MembershipServiceError(
                f"Invalid membership response for worker group {worker_group_id}: {r.text}"
            ) from e


class InMemoryMembershipResolver(MembershipResolver):
    def __init__(self, groups: dict[int, list[int]] | None = None):
        self._lock = threading.Lock()
        self._groups: dict[int, list[int]] = {
            g: list(ids) for g, ids in (groups or {}).items()
        }
        self._failure: Exception | None = None
        self.calls: list[int] = []

    def set_workers(self, worker_group_id: int, node_ids: list[int]) -> None:
        with self._lock:
            self._groups[worker_group_id] = list(node_ids)

    def add_worker(self, worker_group_id: int, node_id: int) -> None:
        with self._lock:
            self._groups.setdefault(worker_group_id, []).append(node_id)

    def remove_worker(self, worker_group_id: int, node_id: int) -> None:
        with self._lock:
            ids = self._groups.get(worker_group_id, [])
            self._groups[worker_group_id] = [i for i in ids if i != node_id]

    def fail_with(self, error: Exception | None) -> None:
        """Make every following resolution raise `error` (None to recover)."""
        with self._lock:
            self._failure = error

    def resolve_node_ids(
        self, worker_group_id: int, timeout_seconds: float | None = None
    ) -> list[int]:
        with self._lock:
            self.calls.append(worker_group_id)
            if self._failure is not None:
                raise self._failure
            return list(self._groups.get(worker_group_id, []))
