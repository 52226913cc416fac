import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from mini_warehouse.common.context import QueryContext, SelectionContext
from mini_warehouse.common.errors import (
    DuplicateWarehouseError,
    MembershipServiceError,
    NoAvailableComputeNodeError,
    ProtectedWarehouseError,
    WarehouseError,
    WarehouseNotFoundError,
)
from mini_warehouse.common.utils import parse_name_or_id, setup_logging

from .models import (
    CreateWarehouseRequest,
    NodesResponse,
    PickRequest,
    PickResponse,
    WarehouseResponse,
)
from .warehouse_manager import WarehouseManager

setup_logging()
logger = logging.getLogger("")

_STATUS_BY_ERROR: list[tuple[type[WarehouseError], int]] = [
    (WarehouseNotFoundError, 404),
    (DuplicateWarehouseError, 409),
    (ProtectedWarehouseError, 403),
    (NoAvailableComputeNodeError, 503),
    (MembershipServiceError, 502),
]


def _status_for(error: WarehouseError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


def create_app(manager: WarehouseManager, **kwargs) -> FastAPI:
    app = FastAPI(title="warehouse-coordinator", **kwargs)
    app.state.manager = manager

    @app.exception_handler(WarehouseError)
    async def warehouse_error_handler(request: Request, exc: WarehouseError):
        status = _status_for(exc)
        logger.info(f"{request.method} {request.url.path} -> {status}: {exc}")
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.post("/warehouses", response_model=WarehouseResponse, status_code=201)
    def create_warehouse(req: CreateWarehouseRequest) -> WarehouseResponse:
        warehouse = manager.registry.create(
            req.name, req.worker_group_id, warehouse_id=req.warehouse_id
        )
        return WarehouseResponse(**warehouse.to_dict())

    @app.get("/warehouses")
    def list_warehouses():
        return {"warehouses": [w.to_dict() for w in manager.list_warehouses()]}

    @app.get("/warehouses/{name_or_id}", response_model=WarehouseResponse)
    def get_warehouse(name_or_id: str) -> WarehouseResponse:
        warehouse = manager.get_warehouse(parse_name_or_id(name_or_id))
        return WarehouseResponse(**warehouse.to_dict())

    @app.delete("/warehouses/{warehouse_id}", response_model=WarehouseResponse)
    def drop_warehouse(warehouse_id: int) -> WarehouseResponse:
        warehouse = manager.registry.drop(warehouse_id)
        return WarehouseResponse(**warehouse.to_dict())

    @app.get("/warehouses/{name_or_id}/nodes", response_model=NodesResponse)
    def list_nodes(name_or_id: str, alive_only: bool = False) -> NodesResponse:
        ref = parse_name_or_id(name_or_id)
        warehouse = manager.get_warehouse(ref)
        if alive_only:
            nodes = manager.get_alive_compute_nodes(ref)
            return NodesResponse(
                warehouse_id=warehouse.id,
                alive_only=True,
                node_ids=[n.id for n in nodes],
                nodes=[n.to_dict() for n in nodes],
            )
        return NodesResponse(
            warehouse_id=warehouse.id,
            alive_only=False,
            node_ids=manager.get_all_compute_node_ids(ref),
        )

    @app.post("/warehouses/{name_or_id}/pick", response_model=PickResponse)
    def pick(name_or_id: str, req: PickRequest) -> PickResponse:
        ref = parse_name_or_id(name_or_id)
        warehouse = manager.get_warehouse(ref)
        ctx = QueryContext(req.timeout_seconds) if req.timeout_seconds is not None else None
        node_ids = manager.get_compute_node_ids(
            ref,
            SelectionContext(query_id=req.query_id, fragment_id=req.fragment_id),
            count=req.count,
            ctx=ctx,
        )
        logger.info(f"Picked {node_ids} in warehouse {warehouse.name} for {req.query_id}")
        return PickResponse(warehouse_id=warehouse.id, node_ids=node_ids)

    return app
