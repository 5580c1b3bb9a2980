"""HTTP read endpoints."""

from .server import SERVICE_KEY, build_app, create_app

__all__ = ["SERVICE_KEY", "build_app", "create_app"]
