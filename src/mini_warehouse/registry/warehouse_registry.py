import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from mini_warehouse.common.errors import (
    DuplicateWarehouseError,
    ProtectedWarehouseError,
    WarehouseNotFoundError,
)
from mini_warehouse.common.models import (
    DEFAULT_WAREHOUSE_ID,
    DEFAULT_WAREHOUSE_NAME,
    DEFAULT_WORKER_GROUP_ID,
    Warehouse,
)

logger = logging.getLogger("")


@dataclass(frozen=True)
class _Snapshot:
    by_id: Mapping[int, Warehouse] = field(default_factory=lambda: MappingProxyType({}))
    by_name: Mapping[str, Warehouse] = field(default_factory=lambda: MappingProxyType({}))


class WarehouseRegistry:
    """
    Name and id indexes of every registered warehouse.

    Both indexes live in one immutable snapshot. Writers hold `_write_lock`,
    build the next snapshot and publish it with a single assignment; readers
    take no lock and only ever look at one snapshot, so a warehouse is visible
    by id exactly when it is visible by name.
    """

    def __init__(self):
        self._write_lock = threading.Lock()
        self._snapshot = _Snapshot()
        self._next_id = DEFAULT_WAREHOUSE_ID + 1

    def _publish(self, by_id: dict[int, Warehouse]) -> None:
        self._snapshot = _Snapshot(
            by_id=MappingProxyType(by_id),
            by_name=MappingProxyType({w.name: w for w in by_id.values()}),
        )

    def create(
        self,
        name: str,
        worker_group_id: int,
        warehouse_id: int | None = None,
    ) -> Warehouse:
        with self._write_lock:
            snap = self._snapshot
            # The default name and id stay reserved even before bootstrap.
            if name == DEFAULT_WAREHOUSE_NAME or name in snap.by_name:
                raise DuplicateWarehouseError.by_name(name)
            if warehouse_id is None:
                warehouse_id = self._next_id
            elif warehouse_id == DEFAULT_WAREHOUSE_ID or warehouse_id in snap.by_id:
                raise DuplicateWarehouseError.by_id(warehouse_id)

            warehouse = Warehouse(
                id=warehouse_id, name=name, worker_group_id=worker_group_id
            )
            by_id = dict(snap.by_id)
            by_id[warehouse.id] = warehouse
            self._publish(by_id)
            self._next_id = max(self._next_id, warehouse.id + 1)

        logger.info(
            f"Created warehouse {warehouse.name} (id={warehouse.id}, "
            f"worker_group={warehouse.worker_group_id})"
        )
        return warehouse

    def bootstrap_default(
        self, worker_group_id: int = DEFAULT_WORKER_GROUP_ID
    ) -> Warehouse:
        with self._write_lock:
            snap = self._snapshot
            existing = snap.by_id.get(DEFAULT_WAREHOUSE_ID)
            if existing is not None:
                return existing
            if DEFAULT_WAREHOUSE_NAME in snap.by_name:
                raise DuplicateWarehouseError.by_name(DEFAULT_WAREHOUSE_NAME)

            warehouse = Warehouse(
                id=DEFAULT_WAREHOUSE_ID,
                name=DEFAULT_WAREHOUSE_NAME,
                worker_group_id=worker_group_id,
            )
            by_id = dict(snap.by_id)
            by_id[warehouse.id] = warehouse
            self._publish(by_id)

        logger.info(f"Bootstrapped default warehouse {warehouse.name}")
        return warehouse

    def drop(self, warehouse_id: int) -> Warehouse:
        with self._write_lock:
            by_id = dict(self._snapshot.by_id)
            warehouse = by_id.get(warehouse_id)
            if warehouse is None:
                raise WarehouseNotFoundError.by_id(warehouse_id)
            if warehouse.is_default:
                raise ProtectedWarehouseError(
                    f"Warehouse {warehouse.name} is reserved and cannot be dropped."
                )
            del by_id[warehouse_id]
            self._publish(by_id)

        logger.info(f"Dropped warehouse {warehouse.name} (id={warehouse.id})")
        return warehouse

    def get_by_name(self, name: str) -> Warehouse:
        warehouse = self._snapshot.by_name.get(name)
        if warehouse is None:
            raise WarehouseNotFoundError.by_name(name)
        return warehouse

    def get_by_id(self, warehouse_id: int) -> Warehouse:
        warehouse = self._snapshot.by_id.get(warehouse_id)
        if warehouse is None:
            raise WarehouseNotFoundError.by_id(warehouse_id)
        return warehouse

    def get(self, name_or_id: str | int) -> Warehouse:
        if isinstance(name_or_id, bool):
            raise TypeError("Warehouse must be addressed by name or id")
        if isinstance(name_or_id, int):
            return self.get_by_id(name_or_id)
        return self.get_by_name(name_or_id)

    def exists(self, name_or_id: str | int) -> bool:
        try:
            self.get(name_or_id)
        except WarehouseNotFoundError:
            return False
        return True

    def list_all(self) -> list[Warehouse]:
        snap = self._snapshot
        return [snap.by_id[i] for i in sorted(snap.by_id)]

    def __len__(self) -> int:
        return len(self._snapshot.by_id)
