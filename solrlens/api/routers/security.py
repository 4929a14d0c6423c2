"""Authentication / authorization passthrough to Solr's security API."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query

from solrlens.api.dependencies import get_cluster_service
from solrlens.domain.services.cluster_service import ClusterService
from solrlens.infra.solr.client import SecurityKind

router = APIRouter()


@router.get("/{kind}")
async def get_security(
    kind: SecurityKind,
    node: Optional[str] = Query(None),
    svc: ClusterService = Depends(get_cluster_service),
) -> Any:
    return await svc.get_security(kind, node)


@router.post("/{kind}")
async def post_security(
    kind: SecurityKind,
    body: Any = Body(...),
    node: Optional[str] = Query(None),
    svc: ClusterService = Depends(get_cluster_service),
) -> Any:
    """Forward a security command; Solr's own error status is relayed."""
    return await svc.post_security(kind, body, node)
