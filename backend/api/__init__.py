"""
PathPal API package.

Provides the FastAPI application for the PathPal account and session service.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
