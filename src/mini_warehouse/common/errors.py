class WarehouseError(Exception):
    """Base class for every error raised by the warehouse registry core."""


class WarehouseNotFoundError(WarehouseError, LookupError):
    @classmethod
    def by_name(cls, name: str) -> "WarehouseNotFoundError":
        return cls(f"Warehouse name: {name} not exist.")

    @classmethod
    def by_id(cls, warehouse_id: int) -> "WarehouseNotFoundError":
        return cls(f"Warehouse id: {warehouse_id} not exist.")


class DuplicateWarehouseError(WarehouseError):
    @classmethod
    def by_name(cls, name: str) -> "DuplicateWarehouseError":
        return cls(f"Warehouse name: {name} already exists.")

    @classmethod
    def by_id(cls, warehouse_id: int) -> "DuplicateWarehouseError":
        return cls(f"Warehouse id: {warehouse_id} already exists.")


class ProtectedWarehouseError(WarehouseError):
    pass


class NoAvailableComputeNodeError(WarehouseError):
    pass


class MembershipServiceError(WarehouseError):
    """
    Transient failure talking to the membership or heartbeat service.
    Never retried here; callers own the retry policy.
    """
