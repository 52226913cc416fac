from typing import Any

from pydantic import BaseModel, Field


class CreateWarehouseRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Unique warehouse name")
    worker_group_id: int = Field(..., description="Worker group backing the warehouse")
    warehouse_id: int | None = Field(None, ge=0, description="Explicit id, allocated if omitted")


class WarehouseResponse(BaseModel):
    id: int
    name: str
    worker_group_id: int
    created_at: str


class NodesResponse(BaseModel):
    warehouse_id: int
    alive_only: bool
    node_ids: list[int]
    nodes: list[dict[str, Any]] | None = None


# planner -> coordinator
class PickRequest(BaseModel):
    query_id: str = ""
    fragment_id: int = 0
    count: int = Field(1, ge=1)
    timeout_seconds: float | None = Field(None, ge=0)


class PickResponse(BaseModel):
    warehouse_id: int
    node_ids: list[int]
