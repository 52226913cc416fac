from __future__ import annotations

import threading
from dataclasses import dataclass
from time import monotonic

from mini_warehouse.common.errors import MembershipServiceError


@dataclass(frozen=True)
class SelectionContext:
    """
    Key used to pin a unit of work to a node. The same key over the same
    candidate set always lands on the same node.
    """

    query_id: str = ""
    fragment_id: int = 0

    @property
    def key(self) -> str:
        return f"{self.query_id}/{self.fragment_id}"


class QueryContext:
    """
    Cancellation scope of one query. Every external call issued on behalf of
    the query shares the same deadline and cancel flag.
    """

    def __init__(self, timeout_seconds: float | None = None):
        if timeout_seconds is not None and timeout_seconds < 0:
            raise ValueError("timeout_seconds must be >= 0")
        self.timeout_seconds = timeout_seconds
        self.deadline = (
            None if timeout_seconds is None else monotonic() + timeout_seconds
        )
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - monotonic())

    @property
    def expired(self) -> bool:
        return self.deadline is not None and monotonic() >= self.deadline

    def check(self, what: str) -> None:
        if self.cancelled:
            raise MembershipServiceError(f"{what} aborted: query cancelled")
        if self.expired:
            raise MembershipServiceError(
                f"{what} aborted: timed out after {self.timeout_seconds}s"
            )
