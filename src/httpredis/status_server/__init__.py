"""HTTP entry point: catch-all probe route and the verdict-to-response mapper."""

from httpredis.status_server.app import create_app, run_server
from httpredis.status_server.mapper import ProbeResponse, map_outcome, to_response

__all__ = ["create_app", "run_server", "ProbeResponse", "map_outcome", "to_response"]
