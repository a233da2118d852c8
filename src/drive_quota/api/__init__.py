"""API package for the quota monitor."""

from drive_quota.api.app import app, create_app
from drive_quota.api.routes import router

__all__ = ["app", "create_app", "router"]
