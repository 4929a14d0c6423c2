"""Cluster-wide endpoints: node health and ZooKeeper ensembles."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from solrlens.api.dependencies import get_cluster_service, load_all_flag
from solrlens.domain.models.health import NodeReport, NodesResponse, ZookeeperDetails, ZookeeperOverview
from solrlens.domain.services.cluster_service import ClusterService

router = APIRouter()


@router.get("/nodes", response_model=NodesResponse)
async def list_nodes(
    datacenter: Optional[str] = Query(None, description="Datacenter name or 'all'"),
    load_all: bool = Depends(load_all_flag),
    svc: ClusterService = Depends(get_cluster_service),
) -> NodesResponse:
    """Probe every selected node; unreachable nodes come back ``offline``."""
    return await svc.list_nodes(datacenter, load_all=load_all)


@router.get("/nodes/{node_id}", response_model=NodeReport)
async def get_node(
    node_id: str = Path(..., description="Node id, e.g. 'solr1-dc1'"),
    svc: ClusterService = Depends(get_cluster_service),
) -> NodeReport:
    return await svc.get_node(node_id)


@router.get("/zookeeper", response_model=ZookeeperOverview)
async def zookeeper_overview(
    datacenter: Optional[str] = Query(None),
    svc: ClusterService = Depends(get_cluster_service),
) -> ZookeeperOverview:
    """Ensemble summary per datacenter plus a cluster roll-up."""
    return await svc.zookeeper_overview(datacenter)


@router.get("/zookeeper/{datacenter}/details", response_model=ZookeeperDetails)
async def zookeeper_details(
    datacenter: str = Path(...),
    svc: ClusterService = Depends(get_cluster_service),
) -> ZookeeperDetails:
    return await svc.zookeeper_details(datacenter)
