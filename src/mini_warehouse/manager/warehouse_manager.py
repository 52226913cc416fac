import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Callable, TypeVar

from mini_warehouse.cluster.membership import MembershipResolver
from mini_warehouse.cluster.node_directory import NodeDirectory
from mini_warehouse.cluster.node_selector import NodeSelector
from mini_warehouse.common.context import QueryContext, SelectionContext
from mini_warehouse.common.errors import NoAvailableComputeNodeError
from mini_warehouse.common.models import DEFAULT_WAREHOUSE_ID, ComputeNode, Warehouse
from mini_warehouse.common.utils import setup_logging
from mini_warehouse.registry.warehouse_registry import WarehouseRegistry

setup_logging()
logger = logging.getLogger("")

T = TypeVar("T")

WarehouseRef = str | int | None

# Granularity at which a waiting caller notices cancellation.
_POLL_SECONDS = 0.05


class WarehouseManager:
    """
    Resolves warehouses to their compute nodes for query planning.

    Collaborators are passed in; nothing is looked up from process-wide
    state. Membership and liveness are re-read on every call. A warehouse
    that does not exist never causes traffic to the membership service.
    """

    def __init__(
        self,
        registry: WarehouseRegistry,
        membership: MembershipResolver,
        directory: NodeDirectory,
        selector: NodeSelector | None = None,
        max_workers: int = 8,
    ):
        self.registry = registry
        self.membership = membership
        self.directory = directory
        self.selector = selector or NodeSelector()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="warehouse-io"
        )

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "WarehouseManager":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _bounded(
        self,
        what: str,
        ctx: QueryContext | None,
        fn: Callable[..., T],
        *args: Any,
    ) -> T:
        if ctx is None:
            return fn(*args)

        ctx.check(what)
        future = self._executor.submit(fn, *args)
        while True:
            remaining = ctx.remaining()
            wait_s = _POLL_SECONDS if remaining is None else min(_POLL_SECONDS, remaining)
            try:
                return future.result(timeout=wait_s)
            except FutureTimeout:
                if future.done():
                    raise
                if ctx.cancelled or ctx.expired:
                    future.cancel()
                    logger.warning(f"Abandoning {what}")
                    ctx.check(what)

    def get_warehouse(self, name_or_id: WarehouseRef) -> Warehouse:
        if name_or_id is None:
            name_or_id = DEFAULT_WAREHOUSE_ID
        return self.registry.get(name_or_id)

    def warehouse_exists(self, name_or_id: WarehouseRef) -> bool:
        if name_or_id is None:
            name_or_id = DEFAULT_WAREHOUSE_ID
        return self.registry.exists(name_or_id)

    def list_warehouses(self) -> list[Warehouse]:
        return self.registry.list_all()

    def _resolve_node_ids(
        self, warehouse: Warehouse, ctx: QueryContext | None
    ) -> list[int]:
        node_ids = self._bounded(
            f"membership resolution of worker group {warehouse.worker_group_id}",
            ctx,
            self.membership.resolve_node_ids,
            warehouse.worker_group_id,
            ctx.remaining() if ctx is not None else None,
        )
        node_ids = list(dict.fromkeys(node_ids))
        logger.debug(f"Warehouse {warehouse.name} resolved to nodes {node_ids}")
        return node_ids

    def _filter_alive(
        self, node_ids: list[int], ctx: QueryContext | None
    ) -> list[ComputeNode]:
        alive: list[ComputeNode] = []
        for node_id in node_ids:
            timeout = None
            if ctx is not None:
                ctx.check(f"liveness lookup of node {node_id}")
                timeout = ctx.remaining()
            node = self.directory.lookup(node_id, timeout)
            # Unknown to the directory means not schedulable.
            if node is not None and node.alive:
                alive.append(node)
        return alive

    def get_all_compute_node_ids(
        self, name_or_id: WarehouseRef, ctx: QueryContext | None = None
    ) -> list[int]:
        warehouse = self.get_warehouse(name_or_id)
        return self._resolve_node_ids(warehouse, ctx)

    def _alive_nodes(
        self, warehouse: Warehouse, ctx: QueryContext | None
    ) -> list[ComputeNode]:
        node_ids = self._resolve_node_ids(warehouse, ctx)
        return self._bounded(
            f"liveness lookup for warehouse {warehouse.name}",
            ctx,
            self._filter_alive,
            node_ids,
            ctx,
        )

    def get_alive_compute_nodes(
        self, name_or_id: WarehouseRef, ctx: QueryContext | None = None
    ) -> list[ComputeNode]:
        warehouse = self.get_warehouse(name_or_id)
        return self._alive_nodes(warehouse, ctx)

    def get_compute_node_ids(
        self,
        name_or_id: WarehouseRef,
        selection: SelectionContext | None = None,
        count: int = 1,
        ctx: QueryContext | None = None,
    ) -> list[int]:
        warehouse = self.get_warehouse(name_or_id)
        alive = self._alive_nodes(warehouse, ctx)
        if not alive:
            raise NoAvailableComputeNodeError(
                f"No alive compute node in warehouse: {warehouse.name}."
            )
        return self.selector.pick_many([n.id for n in alive], selection, count)

    def get_compute_node_id(
        self,
        name_or_id: WarehouseRef,
        selection: SelectionContext | None = None,
        ctx: QueryContext | None = None,
    ) -> int:
        return self.get_compute_node_ids(name_or_id, selection, 1, ctx)[0]
