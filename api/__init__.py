"""
HTTP API for member management.

Exposes a single FastAPI application with CRUD endpoints for members.
"""

from api.main import app, create_app

__all__ = ["app", "create_app"]
