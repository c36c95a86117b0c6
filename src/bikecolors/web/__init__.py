"""
HTTP layer for bikecolors (FastAPI routes, templates and static assets).
"""

from .app import create_app

__all__ = ["create_app"]
