"""HTTP service mode."""

from .app import caller_from_request, create_app, run_service

__all__ = ["caller_from_request", "create_app", "run_service"]
