"""Global reusable FastAPI dependencies (settings, topology, HTTP client, services)."""
import httpx
from fastapi import Depends, Request

from solrlens.core.config import Settings, get_settings
from solrlens.domain.models.topology import Topology
from solrlens.domain.services.cluster_service import ClusterService
from solrlens.services.topology_store import TopologyStore


def get_topology(request: Request) -> Topology:
    """One topology snapshot per request; raises ConfigurationError if none loaded."""
    store: TopologyStore = request.app.state.topology_store
    return store.snapshot()


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_cluster_service(
    topology: Topology = Depends(get_topology),
    http: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> ClusterService:
    return ClusterService(topology, http, settings)


def load_all_flag(request: Request, settings: Settings = Depends(get_settings)) -> bool:
    """``loadAll`` query flag; only ``true``/``1``/``yes`` enable it when given."""
    raw = request.query_params.get("loadAll")
    if raw is None:
        return settings.nodes_load_all_default
    return raw.strip().lower() in ("true", "1", "yes")
