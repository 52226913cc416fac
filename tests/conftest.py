from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from mini_warehouse.cluster.membership import InMemoryMembershipResolver  # noqa: E402
from mini_warehouse.cluster.node_directory import InMemoryNodeDirectory  # noqa: E402
from mini_warehouse.manager.warehouse_manager import WarehouseManager  # noqa: E402
from mini_warehouse.registry.warehouse_registry import WarehouseRegistry  # noqa: E402


@pytest.fixture
def registry() -> WarehouseRegistry:
    return WarehouseRegistry()


@pytest.fixture
def membership() -> InMemoryMembershipResolver:
    return InMemoryMembershipResolver()


@pytest.fixture
def directory() -> InMemoryNodeDirectory:
    return InMemoryNodeDirectory()


@pytest.fixture
def manager(registry, membership, directory):
    mgr = WarehouseManager(registry, membership, directory, max_workers=4)
    yield mgr
    mgr.close()
