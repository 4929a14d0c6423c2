"""Aggregate all REST sub-routers into `api_router` and `security_router`."""

from fastapi import APIRouter

from .cluster import router as cluster_router
from .datacenters import router as datacenters_router
from .logs import router as logging_router
from .security import router as security_router
from .system import router as system_router

api_router = APIRouter()
api_router.include_router(cluster_router, prefix="/cluster", tags=["cluster"])
api_router.include_router(datacenters_router, tags=["datacenters"])
api_router.include_router(logging_router, tags=["logging"])
api_router.include_router(system_router, tags=["system"])

__all__ = ["api_router", "security_router"]
