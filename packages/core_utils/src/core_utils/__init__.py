from .health import *
from .ids import *
from .uvicorn_entry import *
from . import jsonx

__all__ = [
    "attach_health_routes",
    "generate_request_id",
    "generate_node_id",
    "edge_id",
    "run",
]
