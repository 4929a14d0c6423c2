"""Datacenter listing, roll-up summary and per-datacenter detail."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from solrlens.api.dependencies import get_cluster_service, get_topology, load_all_flag
from solrlens.domain.models.health import DatacenterDetail, DatacenterNodes, DatacentersSummaryResponse
from solrlens.domain.models.topology import Topology
from solrlens.domain.services.cluster_service import ClusterService

router = APIRouter()


@router.get("/datacenters")
async def list_datacenters(svc: ClusterService = Depends(get_cluster_service)) -> dict:
    return svc.datacenters_listing()


@router.get("/datacenter-config")
async def datacenter_config(topology: Topology = Depends(get_topology)) -> dict:
    """The topology exactly as the configuration file describes it."""
    return topology.to_config()


# Declared before /datacenters/{datacenter} so "summary" is not taken for a name
@router.get("/datacenters/summary", response_model=DatacentersSummaryResponse)
async def datacenters_summary(svc: ClusterService = Depends(get_cluster_service)) -> DatacentersSummaryResponse:
    """Per-datacenter health using only system info and ZooKeeper status."""
    return await svc.datacenters_summary()


@router.get("/datacenters/{datacenter}", response_model=DatacenterDetail)
async def datacenter_detail(
    datacenter: str = Path(...),
    load_all: bool = Depends(load_all_flag),
    svc: ClusterService = Depends(get_cluster_service),
) -> DatacenterDetail:
    return await svc.datacenter_detail(datacenter, load_all=load_all)


@router.get("/datacenter/{datacenter}/nodes", response_model=DatacenterNodes)
async def datacenter_nodes(
    datacenter: str = Path(..., description="Datacenter name, matched case-insensitively"),
    svc: ClusterService = Depends(get_cluster_service),
) -> DatacenterNodes:
    return await svc.datacenter_nodes(datacenter)
