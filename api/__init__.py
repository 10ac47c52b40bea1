"""
API Module for the Intent Router.

FastAPI application with routes for:
- Routed chat
- Handler listing
- Health and Prometheus metrics
"""

from .main import create_app, app

__all__ = ["create_app", "app"]
