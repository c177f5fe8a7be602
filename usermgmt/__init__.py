"""User management service: admin-only user CRUD guarded by the admin floor."""

from __future__ import annotations

from typing import Any


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the configured FastAPI application."""

    from .app import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = ["create_app"]
