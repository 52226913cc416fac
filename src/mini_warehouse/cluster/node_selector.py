from __future__ import annotations

import hashlib
from collections.abc import Iterable

from mini_warehouse.common.context import SelectionContext
from mini_warehouse.common.errors import NoAvailableComputeNodeError


def _score(key: str, node_id: int) -> int:
    digest = hashlib.blake2b(f"{key}:{node_id}".encode(), digest_size=8).digest()
    return int.from_bytes(digest, "big")


class NodeSelector:
    """
    Rendezvous (highest random weight) hashing over the candidate ids.

    The result depends only on the candidate set and the selection key, never
    on candidate order or on previous calls. Removing a node only moves the
    keys that were on it.
    """

    def rank(
        self, candidate_ids: Iterable[int], selection: SelectionContext | None = None
    ) -> list[int]:
        key = selection.key if selection is not None else ""
        unique = set(candidate_ids)
        return sorted(unique, key=lambda node_id: (-_score(key, node_id), node_id))

    def pick(
        self, candidate_ids: Iterable[int], selection: SelectionContext | None = None
    ) -> int:
        return self.pick_many(candidate_ids, selection, count=1)[0]

    def pick_many(
        self,
        candidate_ids: Iterable[int],
        selection: SelectionContext | None = None,
        count: int = 1,
    ) -> list[int]:
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")
        ranked = self.rank(candidate_ids, selection)
        if not ranked:
            raise NoAvailableComputeNodeError("No candidate compute node to pick from.")
        return ranked[:count]
