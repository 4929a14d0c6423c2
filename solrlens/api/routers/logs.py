"""Logger configuration per datacenter and per node."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query

from solrlens.api.dependencies import get_cluster_service
from solrlens.domain.models.health import DatacenterLogging, NodeLoggingDetail
from solrlens.domain.services.cluster_service import ClusterService

router = APIRouter()


@router.get("/datacenter/{datacenter}/logging", response_model=DatacenterLogging, response_model_exclude_none=True)
async def datacenter_logging(
    datacenter: str = Path(...),
    svc: ClusterService = Depends(get_cluster_service),
) -> DatacenterLogging:
    return await svc.datacenter_logging(datacenter)


@router.get("/datacenter/{datacenter}/logging/{node}", response_model=NodeLoggingDetail)
async def node_logging(
    datacenter: str = Path(...),
    node: str = Path(..., description="Node name within the datacenter"),
    svc: ClusterService = Depends(get_cluster_service),
) -> NodeLoggingDetail:
    return await svc.node_logging(datacenter, node)


@router.get("/logging/info")
async def logging_info(
    node: str = Query(..., description="Node name"),
    svc: ClusterService = Depends(get_cluster_service),
) -> dict:
    """Raw ``/admin/info/logging`` including the log watcher history."""
    return await svc.logging_info(node)
