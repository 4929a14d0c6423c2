"""ZooKeeper ensemble status, read through a datacenter's Solr nodes.

The ensemble is never contacted directly. Each Solr node proxies
``/admin/zookeeper/status``; nodes are tried in configured order and the
first one returning a non-empty ``zkStatus`` is used. When none answers, the
summary is rebuilt from the static ``zookeeperNodes`` configuration and
marked ``unreachable``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

import httpx

from solrlens.core.exceptions import UpstreamUnavailable
from solrlens.domain.models.health import (
    DatacenterZkSummary,
    EnsembleMemberHealth,
    EnsembleMode,
    MemberRole,
    ZookeeperDetails,
)
from solrlens.domain.models.topology import Datacenter, NodeRef
from solrlens.domain.services.aggregator import ensemble_status
from solrlens.infra.solr.client import SolrNodeClient
from solrlens.infra.solr.fields import (
    Present,
    read_bool,
    read_float,
    read_int,
    read_scalar_str,
    read_str,
    split_host_port,
)

logger = logging.getLogger(__name__)

DEFAULT_ZK_PORT = 2181
UNREACHABLE_ERROR = "Unable to connect to any Solr node in this datacenter"

_ROLES: dict[str, MemberRole] = {
    "leader": "leader",
    "follower": "follower",
    "observer": "observer",
    "standalone": "standalone",
}


@dataclass(frozen=True)
class ZkStatusHit:
    """A successful status read and the node that served it."""

    node: NodeRef
    zk_status: dict


@dataclass
class EnsembleProber:
    """
    Attributes:
        http: Shared httpx.AsyncClient.
    """

    http: httpx.AsyncClient

    async def first_status(
        self, datacenter: Datacenter, *, timeout: float, candidates: Optional[Sequence[NodeRef]] = None
    ) -> Optional[ZkStatusHit]:
        """Walk *candidates* (default: every node) and return the first usable answer."""
        nodes = datacenter.nodes if candidates is None else candidates
        for node in nodes:
            client = SolrNodeClient(http=self.http, node=node)
            try:
                data = await client.get_zookeeper_status(timeout=timeout)
            except UpstreamUnavailable as exc:
                logger.warning("Failed to get ZK status from %s: %s", node.name, exc.detail)
                continue
            zk_status = data.get("zkStatus")
            if isinstance(zk_status, dict) and zk_status:
                return ZkStatusHit(node=node, zk_status=zk_status)
            logger.info("Node %s returned no zkStatus payload", node.name)
        return None

    async def probe(
        self, datacenter: Datacenter, *, timeout: float, candidates: Optional[Sequence[NodeRef]] = None
    ) -> DatacenterZkSummary:
        hit = await self.first_status(datacenter, timeout=timeout, candidates=candidates)
        if hit is None:
            return summary_from_config(datacenter)
        return summarize_zk_status(datacenter.name, hit.zk_status, retrieved_from=hit.node.name)

    async def fetch_details(self, datacenter: Datacenter, *, timeout: float) -> ZookeeperDetails:
        """
        Raw ``zkStatus`` for the detail view.

        Raises
        ------
        UpstreamUnavailable
            No node in the datacenter answered.
        """
        hit = await self.first_status(datacenter, timeout=timeout)
        if hit is None:
            raise UpstreamUnavailable(
                f"Unable to retrieve ZooKeeper details for datacenter '{datacenter.name}': "
                "no Solr nodes in this datacenter are responding",
                target=datacenter.name,
            )
        return ZookeeperDetails(
            datacenter=datacenter.name,
            retrievedFrom=hit.node.name,
            zkStatus=hit.zk_status,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )


# ---------- normalization ----------

def normalize_member(detail: Mapping[str, Any], index: int) -> EnsembleMemberHealth:
    host_field = read_str(detail, "host")
    if isinstance(host_field, Present):
        hostname, port = split_host_port(host_field.value, DEFAULT_ZK_PORT)
    else:
        hostname, port = f"zookeeper-{index + 1}", DEFAULT_ZK_PORT

    ok = read_bool(detail, "ok").or_default(False)
    state = read_str(detail, "zk_server_state").or_default("")
    if not state:
        state = read_str(detail, "role").or_default("")

    return EnsembleMemberHealth(
        hostname=hostname,
        port=port,
        status="connected" if ok else "disconnected",
        role=_ROLES.get(state.lower(), "unknown"),
        serverId=read_scalar_str(detail, "serverId").or_default(None),
        version=read_str(detail, "zk_version").or_default(None),
        activeConnections=read_int(detail, "zk_num_alive_connections").or_default(None),
        avgLatencyMs=read_float(detail, "zk_avg_latency").or_default(None),
        clientPort=read_int(detail, "clientPort").or_default(None),
    )


def _mode(raw: str) -> EnsembleMode:
    raw = raw.lower()
    if raw in ("ensemble", "standalone"):
        return raw  # type: ignore[return-value]
    return "unknown"


def summarize_zk_status(
    datacenter: str, zk_status: Mapping[str, Any], *, retrieved_from: Optional[str]
) -> DatacenterZkSummary:
    details = zk_status.get("details")
    rows = [d for d in details if isinstance(d, Mapping)] if isinstance(details, list) else []
    members = [normalize_member(row, i) for i, row in enumerate(rows)]
    connected = sum(1 for m in members if m.status == "connected")

    errors = zk_status.get("errors")
    error_list = [str(e) for e in errors] if isinstance(errors, list) else []

    return DatacenterZkSummary(
        datacenter=datacenter,
        members=members,
        totalMembers=len(members),
        connectedMembers=connected,
        mode=_mode(read_str(zk_status, "mode").or_default("")),
        ensembleSize=read_int(zk_status, "ensembleSize").or_default(len(members)),
        overallStatus=ensemble_status(len(members), connected, responded=True),
        upstreamStatus=read_str(zk_status, "status").or_default(None),
        dynamicReconfigEnabled=read_bool(zk_status, "dynamicReconfig").or_default(False),
        connectionString=read_str(zk_status, "zkHost").or_default(""),
        errors=error_list,
        retrievedFromHost=retrieved_from,
        rawDetails=[dict(row) for row in rows],
    )


def summary_from_config(datacenter: Datacenter) -> DatacenterZkSummary:
    """Fallback built only from the configured ensemble hosts."""
    members = [
        EnsembleMemberHealth(
            hostname=h.host,
            port=h.port,
            status="unknown",
            role="unknown",
            serverId=str(i + 1),
            clientPort=h.port,
        )
        for i, h in enumerate(datacenter.ensemble_hosts)
    ]
    return DatacenterZkSummary(
        datacenter=datacenter.name,
        members=members,
        totalMembers=len(members),
        connectedMembers=0,
        mode="unknown",
        ensembleSize=len(members),
        overallStatus=ensemble_status(len(members), 0, responded=False),
        dynamicReconfigEnabled=False,
        connectionString=",".join(h.address for h in datacenter.ensemble_hosts),
        errors=[UNREACHABLE_ERROR],
        retrievedFromHost=None,
        rawDetails=[{} for _ in members],
    )
