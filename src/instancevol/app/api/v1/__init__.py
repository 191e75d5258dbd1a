"""API v1 module."""

from instancevol.app.api.v1.volumes import router as volumes_router

__all__ = ["volumes_router"]
