"""Request-level operations over one topology snapshot.

Every public coroutine here corresponds to one dashboard view. They share the
same pipeline: resolve targets, fan out probes, fold with the aggregator.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

import httpx

from solrlens.core.config import Settings
from solrlens.core.exceptions import CandidatesExhausted, NotFoundError, UpstreamUnavailable
from solrlens.domain.models.health import (
    DatacenterDetail,
    DatacenterDetailSummary,
    DatacenterHealthSummary,
    DatacenterLogging,
    DatacenterNodes,
    DatacentersSummaryResponse,
    DatacenterZkSummary,
    NodeHealth,
    NodeLogging,
    NodeLoggingDetail,
    NodeReport,
    NodeSecurity,
    NodesResponse,
    NodeSystemInfo,
    ZookeeperDetails,
    ZookeeperOverview,
)
from solrlens.domain.models.topology import Datacenter, Topology
from solrlens.domain.services import aggregator
from solrlens.domain.services.ensemble_prober import EnsembleProber, summary_from_config
from solrlens.domain.services.fanout import ProbeOutcome, run_all
from solrlens.domain.services.node_prober import NodeProber, summarize_logging
from solrlens.domain.services.resolver import QueryResolver, Target
from solrlens.infra.solr.client import QueryParams, SecurityKind, SolrNodeClient

logger = logging.getLogger(__name__)

R = TypeVar("R")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _report(target: Target, health: NodeHealth) -> NodeReport:
    node = target.node
    return NodeReport(
        id=target.node_id,
        name=node.name,
        url=node.base_url,
        datacenter=target.datacenter.name,
        host=node.host,
        port=node.port,
        default=target.is_default,
        **health.model_dump(),
    )


def _report_from_outcome(outcome: ProbeOutcome[Target, NodeHealth]) -> NodeReport:
    if outcome.ok and outcome.value is not None:
        return _report(outcome.target, outcome.value)
    return _report(outcome.target, NodeHealth(status="offline", error=outcome.error_message))


class ClusterService:
    """Coordinates fleet-wide queries for a single request."""

    def __init__(self, topology: Topology, http: httpx.AsyncClient, settings: Settings) -> None:
        self._settings = settings
        self._http = http
        self.resolver = QueryResolver(topology)
        self.nodes = NodeProber(http=http)
        self.ensembles = EnsembleProber(http=http)

    @property
    def topology(self) -> Topology:
        return self.resolver.topology

    async def _fan_out(self, targets: Sequence[Any], probe: Callable[[Any], Awaitable[R]]) -> list[ProbeOutcome]:
        return await run_all(targets, probe, limit=self._settings.probe_concurrency or None)

    async def _first_reachable(
        self, targets: Sequence[Target], call: Callable[[SolrNodeClient], Awaitable[R]], what: str
    ) -> tuple[Target, R]:
        """Try *targets* in order; the first one that answers wins."""
        last: Optional[UpstreamUnavailable] = None
        for target in targets:
            client = SolrNodeClient(http=self._http, node=target.node)
            try:
                return target, await call(client)
            except UpstreamUnavailable as exc:
                logger.warning("%s failed on %s: %s", what, target.node.name, exc.detail)
                last = exc
        detail = f"No available Solr nodes found for {what}"
        if last is not None:
            detail = f"{detail} (last error: {last.detail})"
        raise CandidatesExhausted(detail)

    # --------------------------------------------------------------------- #
    # Nodes                                                                  #
    # --------------------------------------------------------------------- #
    async def list_nodes(self, datacenter: Optional[str] = None, load_all: bool = True) -> NodesResponse:
        """Every selected node with a definite status, plus the roll-up."""
        targets = self.resolver.resolve(datacenter, load_all=load_all)
        timeout = self._settings.node_probe_timeout
        outcomes = await self._fan_out(targets, lambda t: self.nodes.probe(t.node, timeout=timeout))
        reports = [_report_from_outcome(o) for o in outcomes]
        return NodesResponse(
            nodes=reports,
            datacenters=self.topology.datacenter_names,
            loadedDefaults=not load_all,
            summary=aggregator.rollup_nodes(reports),
        )

    async def get_node(self, node_id: str) -> NodeReport:
        target = self.resolver.find_node_by_id(node_id)
        health = await self.nodes.probe(target.node, timeout=self._settings.node_probe_timeout)
        return _report(target, health)

    async def system_info(self, node: Optional[str] = None) -> NodeSystemInfo:
        """
        Raw system info for *node*, or for the first reachable node.

        A named node that is down is still a 200 with ``status: offline``;
        only the unnamed lookup fails when nothing answers.
        """
        timeout = self._settings.node_probe_timeout

        def _doc(target: Target, **extra) -> NodeSystemInfo:
            return NodeSystemInfo(
                id=target.node_id,
                name=target.node.name,
                url=target.node.base_url,
                datacenter=target.datacenter.name,
                **extra,
            )

        if node:
            target = self.resolver.find_node(node)
            try:
                raw = await self.nodes.fetch_system_info(target.node, timeout=timeout)
            except UpstreamUnavailable as exc:
                return _doc(target, status="offline", error=exc.detail)
            return _doc(target, status="online", systemInfo=raw)

        target, raw = await self._first_reachable(
            self.resolver.resolve(), lambda c: c.get_system_info(timeout=timeout), "system info"
        )
        return _doc(target, status="online", systemInfo=raw)

    # --------------------------------------------------------------------- #
    # ZooKeeper                                                              #
    # --------------------------------------------------------------------- #
    async def _ensemble(self, dc: Datacenter, timeout: float, candidates=None) -> DatacenterZkSummary:
        return await self.ensembles.probe(dc, timeout=timeout, candidates=candidates)

    async def zookeeper_overview(self, datacenter: Optional[str] = None) -> ZookeeperOverview:
        if datacenter and not self.resolver.is_all(datacenter):
            dcs = [self.resolver.find_datacenter(datacenter)]
        else:
            dcs = list(self.topology.datacenters)
        timeout = self._settings.zk_detail_timeout
        outcomes = await self._fan_out(dcs, lambda dc: self._ensemble(dc, timeout))
        summaries = [o.value if o.ok else summary_from_config(o.target) for o in outcomes]
        return ZookeeperOverview(
            datacenters={s.datacenter: s for s in summaries},
            summary=aggregator.summarize_ensembles(summaries),
        )

    async def zookeeper_details(self, datacenter: str) -> ZookeeperDetails:
        dc = self.resolver.find_datacenter(datacenter)
        return await self.ensembles.fetch_details(dc, timeout=self._settings.zk_detail_timeout)

    async def zookeeper_status(self, node: Optional[str] = None, datacenter: Optional[str] = None) -> dict:
        """Raw ``/admin/zookeeper/status`` from the selected or first reachable node."""
        targets = self.resolver.resolve(datacenter, node)
        if not targets:
            raise NotFoundError("No Solr node found for ZooKeeper status")
        timeout = self._settings.zk_detail_timeout
        _, data = await self._first_reachable(
            targets, lambda c: c.get_zookeeper_status(timeout=timeout), "ZooKeeper status"
        )
        return data

    # --------------------------------------------------------------------- #
    # Datacenters                                                            #
    # --------------------------------------------------------------------- #
    def datacenters_listing(self) -> dict:
        default = self.topology.default_datacenter
        return {
            "datacenters": self.topology.to_config()["datacenters"],
            "defaultDatacenter": default.name if default else None,
            "timestamp": _now_iso(),
        }

    async def _summarize_datacenter(self, dc: Datacenter) -> DatacenterHealthSummary:
        """System info for every node, then ZK status through an online node."""
        timeout = self._settings.summary_timeout
        outcomes = await self._fan_out(
            list(dc.nodes), lambda n: self.nodes.probe(n, timeout=timeout, include_metrics=False)
        )
        statuses = [o.value.status if o.ok and o.value else "offline" for o in outcomes]
        online = [o.target for o, s in zip(outcomes, statuses) if s == "online"]

        if online:
            zk = await self._ensemble(dc, timeout, candidates=online)
        else:
            zk = summary_from_config(dc)

        return DatacenterHealthSummary(
            name=dc.name,
            nodeCount=len(dc.nodes),
            onlineNodes=len(online),
            healthStatus=aggregator.classify_datacenter(statuses),
            zkNodeCount=zk.totalMembers,
            connectedZkNodes=zk.connectedMembers,
            hasZooKeeper=zk.totalMembers > 0,
            zkHealthy=zk.connectedMembers > 0 and zk.overallStatus in ("green", "yellow"),
            zkStatus=zk.overallStatus,
            sampleNodeUrl=dc.nodes[0].base_url if dc.nodes else None,
            configuredNodes=[n.base_url for n in dc.nodes],
        )

    async def datacenters_summary(self) -> DatacentersSummaryResponse:
        """Cheap per-datacenter roll-up: system info + ZK status only."""
        dcs = list(self.topology.datacenters)
        outcomes = await run_all(dcs, self._summarize_datacenter)
        summaries = []
        for o in outcomes:
            if o.ok and o.value is not None:
                summaries.append(o.value)
                continue
            logger.error("Summary for datacenter %s failed: %s", o.target.name, o.error_message)
            summaries.append(
                DatacenterHealthSummary(
                    name=o.target.name,
                    nodeCount=len(o.target.nodes),
                    onlineNodes=0,
                    healthStatus="offline",
                    zkNodeCount=len(o.target.ensemble_hosts),
                    hasZooKeeper=bool(o.target.ensemble_hosts),
                    zkStatus="unreachable",
                    configuredNodes=[n.base_url for n in o.target.nodes],
                )
            )
        return DatacentersSummaryResponse(
            datacenters=summaries,
            summary=aggregator.summarize_cluster(summaries),
            timestamp=_now_iso(),
        )

    async def _zk_info(self, dc: Datacenter) -> Optional[ZookeeperDetails]:
        if not dc.ensemble_hosts:
            return None
        try:
            return await self.ensembles.fetch_details(dc, timeout=self._settings.zk_detail_timeout)
        except UpstreamUnavailable as exc:
            logger.warning("Failed to get ZK info for %s: %s", dc.name, exc.detail)
            return None

    async def datacenter_detail(self, datacenter: str, load_all: bool = True) -> DatacenterDetail:
        """Ping + system info per node, with best-effort ZooKeeper details."""
        dc = self.resolver.find_datacenter(datacenter)
        targets = self.resolver.datacenter_targets(dc, load_all=load_all)
        timeout = self._settings.node_probe_timeout

        outcomes, zk_info = await asyncio.gather(
            self._fan_out(targets, lambda t: self.nodes.probe_with_ping(t.node, timeout=timeout)),
            self._zk_info(dc),
        )
        reports = []
        for o in outcomes:
            health = o.value if o.ok and o.value else NodeHealth(status="error", error=o.error_message)
            reports.append(_report(o.target, health))
        online = sum(1 for r in reports if r.status == "online")
        return DatacenterDetail(
            datacenter=dc.name,
            nodes=reports,
            zkInfo=zk_info,
            config={
                "totalConfiguredNodes": len(dc.nodes),
                "zkNodes": [h.model_dump() for h in dc.ensemble_hosts],
            },
            summary=DatacenterDetailSummary(
                totalNodes=len(reports),
                onlineNodes=online,
                healthPercentage=aggregator.percentage(online, len(reports)),
                status=aggregator.classify_datacenter(r.status for r in reports),
            ),
            timestamp=_now_iso(),
        )

    async def datacenter_nodes(self, datacenter: str) -> DatacenterNodes:
        """System info and metrics for every node of one datacenter, name matched case-insensitively."""
        dc = self.resolver.find_datacenter(datacenter, ignore_case=True)
        timeout = self._settings.node_probe_timeout
        outcomes = await self._fan_out(
            self.resolver.datacenter_targets(dc), lambda t: self.nodes.probe(t.node, timeout=timeout)
        )
        reports = [_report_from_outcome(o) for o in outcomes]
        return DatacenterNodes(datacenter=dc.name, nodes=reports, summary=aggregator.rollup_nodes(reports))

    async def _node_logging(self, target: Target) -> NodeLogging:
        node = target.node
        doc = dict(nodeId=target.node_id, nodeName=node.name, host=node.host, port=node.port)
        try:
            raw = await self.nodes.fetch_logging(node, timeout=self._settings.passthrough_timeout)
        except UpstreamUnavailable as exc:
            logger.warning("Logging info failed for %s: %s", node.name, exc.detail)
            return NodeLogging(status="error", error=exc.detail, timestamp=_now_iso(), **doc)
        return NodeLogging(status="online", loggingInfo=summarize_logging(raw), timestamp=_now_iso(), **doc)

    async def datacenter_logging(self, datacenter: str) -> DatacenterLogging:
        """Logger configuration of every node in one datacenter; failures stay per node."""
        dc = self.resolver.find_datacenter(datacenter, ignore_case=True)
        outcomes = await self._fan_out(self.resolver.datacenter_targets(dc), self._node_logging)
        nodes = []
        for o in outcomes:
            if o.ok and o.value is not None:
                nodes.append(o.value)
                continue
            target = o.target
            nodes.append(
                NodeLogging(
                    nodeId=target.node_id,
                    nodeName=target.node.name,
                    host=target.node.host,
                    port=target.node.port,
                    status="error",
                    error=o.error_message,
                    timestamp=_now_iso(),
                )
            )
        return DatacenterLogging(datacenter=dc.name, nodes=nodes, timestamp=_now_iso())

    async def node_logging(self, datacenter: str, node: str) -> NodeLoggingDetail:
        dc = self.resolver.find_datacenter(datacenter, ignore_case=True)
        ref = dc.find_node(node)
        if ref is None:
            raise NotFoundError(f"Node '{node}' not found in datacenter '{dc.name}'")
        data = await self.nodes.fetch_logging(ref, timeout=self._settings.passthrough_timeout)
        return NodeLoggingDetail(
            nodeId=dc.node_id(ref),
            nodeName=ref.name,
            host=ref.host,
            port=ref.port,
            loggingData=data,
            timestamp=_now_iso(),
        )

    # --------------------------------------------------------------------- #
    # Single-node passthroughs                                               #
    # --------------------------------------------------------------------- #
    async def cores(
        self, datacenter: Optional[str] = None, node: Optional[str] = None,
        params: Optional[QueryParams] = None,
    ) -> dict:
        """Core listing from the first selected node that answers."""
        targets = self.resolver.resolve(datacenter, node)
        if not targets:
            raise CandidatesExhausted("No Solr node found")
        timeout = self._settings.cores_timeout
        _, data = await self._first_reachable(
            targets, lambda c: c.get_cores(timeout=timeout, params=params), "core listing"
        )
        return data

    async def properties(self, node: str) -> dict:
        target = self.resolver.find_node(node)
        client = SolrNodeClient(http=self._http, node=target.node)
        data = await client.get_properties(timeout=self._settings.passthrough_timeout)
        props = data.get("system.properties")
        return {
            "node": target.node.name,
            "properties": props if isinstance(props, dict) else {},
            "timestamp": _now_iso(),
        }

    def _security_targets(self, node: Optional[str]) -> list[Target]:
        return self.resolver.resolve(node=node) if node else self.resolver.resolve()

    async def get_security(self, kind: SecurityKind, node: Optional[str] = None) -> dict:
        timeout = self._settings.passthrough_timeout
        _, data = await self._first_reachable(
            self._security_targets(node), lambda c: c.get_security(kind, timeout=timeout), kind
        )
        return data

    async def post_security(self, kind: SecurityKind, body: Any, node: Optional[str] = None) -> Any:
        """Forward *body*; an upstream error status is relayed, not retried."""
        timeout = self._settings.passthrough_timeout
        _, data = await self._first_reachable(
            self._security_targets(node), lambda c: c.post_security(kind, body, timeout=timeout), kind
        )
        return data

    # --------------------------------------------------------------------- #
    # Node diagnostics                                                       #
    # --------------------------------------------------------------------- #
    async def node_security(self, node: str) -> NodeSecurity:
        """Security posture guessed from one node's system info."""
        target = self.resolver.find_node(node)
        security = await self.nodes.inspect_security(target.node, timeout=self._settings.node_probe_timeout)
        return NodeSecurity(node=target.node.name, security=security, timestamp=_now_iso())

    async def node_metrics(self, node: str) -> dict:
        """Unfiltered ``/admin/metrics`` of a named node."""
        target = self.resolver.find_node(node)
        client = SolrNodeClient(http=self._http, node=target.node)
        return await client.get_metrics(timeout=self._settings.passthrough_timeout, prefix=None)

    async def logging_info(self, node: str) -> dict:
        target = self.resolver.find_node(node)
        client = SolrNodeClient(http=self._http, node=target.node)
        return await client.get_logging(timeout=self._settings.passthrough_timeout, params={"since": 0})

    async def zookeeper_tree(self, node: Optional[str] = None, datacenter: Optional[str] = None) -> dict:
        targets = self.resolver.resolve(datacenter, node)
        if not targets:
            raise NotFoundError("No Solr node found for ZooKeeper tree")
        timeout = self._settings.zk_detail_timeout
        _, data = await self._first_reachable(
            targets, lambda c: c.get_zookeeper_tree(timeout=timeout), "ZooKeeper tree"
        )
        return data

    async def threads(self, node: Optional[str] = None, datacenter: Optional[str] = None) -> dict:
        """Thread dump from the selected or first reachable node."""
        timeout = self._settings.passthrough_timeout
        _, data = await self._first_reachable(
            self.resolver.resolve(datacenter, node), lambda c: c.get_threads(timeout=timeout), "thread dump"
        )
        return data
