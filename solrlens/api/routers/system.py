"""Single-node passthroughs: system info, cores, ZooKeeper, properties, diagnostics."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request

from solrlens.api.dependencies import get_cluster_service
from solrlens.domain.models.health import NodeSecurity, NodeSystemInfo
from solrlens.domain.services.cluster_service import ClusterService

router = APIRouter()

# Selector keys consumed here; everything else goes to Solr untouched
_SELECTOR_PARAMS = {"datacenter", "node"}


@router.get("/system/info", response_model=NodeSystemInfo, response_model_exclude_none=True)
async def system_info(
    node: Optional[str] = Query(None, description="Node name; omit for the first reachable node"),
    svc: ClusterService = Depends(get_cluster_service),
) -> NodeSystemInfo:
    return await svc.system_info(node)


@router.get("/admin/cores")
async def list_cores(
    request: Request,
    datacenter: Optional[str] = Query(None),
    node: Optional[str] = Query(None),
    svc: ClusterService = Depends(get_cluster_service),
) -> dict:
    """Core listing from the first selected node that answers."""
    extra = [(k, v) for k, v in request.query_params.multi_items() if k not in _SELECTOR_PARAMS]
    return await svc.cores(datacenter, node, extra)


@router.get("/admin/zookeeper/status")
async def zookeeper_status(
    node: Optional[str] = Query(None),
    datacenter: Optional[str] = Query(None),
    svc: ClusterService = Depends(get_cluster_service),
) -> dict:
    return await svc.zookeeper_status(node, datacenter)


@router.get("/admin/properties/{node}")
async def node_properties(
    node: str = Path(..., description="Node name"),
    svc: ClusterService = Depends(get_cluster_service),
) -> dict:
    return await svc.properties(node)


@router.get("/admin/zookeeper/tree")
async def zookeeper_tree(
    node: Optional[str] = Query(None),
    datacenter: Optional[str] = Query(None),
    svc: ClusterService = Depends(get_cluster_service),
) -> dict:
    return await svc.zookeeper_tree(node, datacenter)


@router.get("/admin/security/{node}", response_model=NodeSecurity)
async def node_security(
    node: str = Path(..., description="Node name"),
    svc: ClusterService = Depends(get_cluster_service),
) -> NodeSecurity:
    """Authentication, authorization and TLS flags guessed from JVM settings."""
    return await svc.node_security(node)


@router.get("/metrics")
async def node_metrics(
    node: str = Query(..., description="Node name"),
    svc: ClusterService = Depends(get_cluster_service),
) -> dict:
    return await svc.node_metrics(node)


@router.get("/info/threads")
async def threads(
    node: Optional[str] = Query(None),
    datacenter: Optional[str] = Query(None),
    svc: ClusterService = Depends(get_cluster_service),
) -> dict:
    return await svc.threads(node, datacenter)
