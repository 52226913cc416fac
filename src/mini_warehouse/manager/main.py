# manager/main.py

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from mini_warehouse.cluster.membership import HttpMembershipResolver
from mini_warehouse.cluster.node_directory import HttpNodeDirectory
from mini_warehouse.common.config import CoordinatorConfig, load_config
from mini_warehouse.registry.warehouse_registry import WarehouseRegistry

from .api import create_app
from .warehouse_manager import WarehouseManager


def build_manager(cfg: CoordinatorConfig) -> WarehouseManager:
    return WarehouseManager(
        registry=WarehouseRegistry(),
        membership=HttpMembershipResolver(cfg.membership_url, cfg.request_timeout_seconds),
        directory=HttpNodeDirectory(cfg.node_directory_url, cfg.request_timeout_seconds),
        max_workers=cfg.external_call_workers,
    )


def build_app(cfg: CoordinatorConfig | None = None) -> FastAPI:
    cfg = cfg or load_config()
    manager = build_manager(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        manager.registry.bootstrap_default(cfg.default_worker_group_id)
        yield
        manager.close()

    return create_app(manager, lifespan=lifespan)


app = build_app()
