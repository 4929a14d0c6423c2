from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

from solrlens.api.dependencies import get_cluster_service
from solrlens.domain.services.cluster_service import ClusterService

router = APIRouter()

_HEALTH_LEVEL = {"online": 2, "degraded": 1, "offline": 0}


@router.get("/metrics")
async def metrics(svc: ClusterService = Depends(get_cluster_service)):
    summary = await svc.datacenters_summary()

    reg = CollectorRegistry()
    g_nodes  = Gauge("solrlens_datacenter_nodes", "Configured Solr nodes per datacenter", ["datacenter"], registry=reg)
    g_online = Gauge("solrlens_datacenter_online_nodes", "Online Solr nodes per datacenter", ["datacenter"], registry=reg)
    g_health = Gauge("solrlens_datacenter_health", "Datacenter health (2=online, 1=degraded, 0=offline)", ["datacenter"], registry=reg)
    g_zk     = Gauge("solrlens_datacenter_zk_connected_members", "Connected ZooKeeper members per datacenter", ["datacenter"], registry=reg)
    g_overall = Gauge("solrlens_cluster_health_percent", "Online nodes over configured nodes, in percent", registry=reg)

    for dc in summary.datacenters:
        g_nodes.labels(datacenter=dc.name).set(dc.nodeCount)
        g_online.labels(datacenter=dc.name).set(dc.onlineNodes)
        g_health.labels(datacenter=dc.name).set(_HEALTH_LEVEL[dc.healthStatus])
        g_zk.labels(datacenter=dc.name).set(dc.connectedZkNodes)
    g_overall.set(summary.summary.overallHealth)

    return Response(generate_latest(reg), media_type=CONTENT_TYPE_LATEST)
