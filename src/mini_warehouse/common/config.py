import os
from dataclasses import dataclass


@dataclass(frozen=True)
class CoordinatorConfig:
    membership_url: str
    node_directory_url: str
    request_timeout_seconds: float
    default_worker_group_id: int
    external_call_workers: int


def load_config() -> CoordinatorConfig:
    return CoordinatorConfig(
        membership_url=os.getenv("MEMBERSHIP_URL", "http://membership:8000").rstrip("/"),
        node_directory_url=os.getenv("NODE_DIRECTORY_URL", "http://heartbeat:8000").rstrip("/"),
        request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "5")),
        default_worker_group_id=int(os.getenv("DEFAULT_WORKER_GROUP_ID", "0")),
        external_call_workers=int(os.getenv("EXTERNAL_CALL_WORKERS", "8")),
    )
