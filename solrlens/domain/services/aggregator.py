"""Pure reductions from probe results to roll-up documents.

Nothing in here performs I/O. Missing data always degrades a summary
(counted as offline / disconnected / unreachable) instead of raising.
"""
from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

from solrlens.domain.models.health import (
    ClusterSummary,
    ClusterZkSummary,
    DatacenterHealth,
    DatacenterHealthSummary,
    DatacenterZkSummary,
    EnsembleMode,
    EnsembleStatus,
    NodeReport,
    NodesRollup,
    NodeStatus,
)


def percentage(part: Optional[float], whole: Optional[float]) -> float:
    """``part / whole * 100``, or 0 when either side is missing or unusable."""
    if part is None or whole is None:
        return 0.0
    try:
        if whole <= 0:
            return 0.0
        result = float(part) / float(whole) * 100.0
    except (TypeError, ValueError, ZeroDivisionError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def classify_datacenter(statuses: Iterable[NodeStatus]) -> DatacenterHealth:
    """All nodes online -> online, none -> offline, anything else -> degraded."""
    statuses = list(statuses)
    online = sum(1 for s in statuses if s == "online")
    if statuses and online == len(statuses):
        return "online"
    if online == 0:
        return "offline"
    return "degraded"


def ensemble_status(total: int, connected: int, responded: bool) -> EnsembleStatus:
    """
    Tri-state coordination health.

    ``unreachable`` when nobody could report, ``unknown`` when the report
    listed no members, else green/yellow/red by connected share.
    """
    if not responded:
        return "unreachable"
    if total <= 0:
        return "unknown"
    if connected >= total:
        return "green"
    if connected > 0:
        return "yellow"
    return "red"


def rollup_nodes(reports: Sequence[NodeReport]) -> NodesRollup:
    """Count node states and sum index metrics over nodes that reported them."""
    online = sum(1 for r in reports if r.status == "online")
    docs = sum(r.metricsSummary.documentsIndexed for r in reports if r.metricsSummary)
    size = sum(r.metricsSummary.indexSizeBytes for r in reports if r.metricsSummary)
    return NodesRollup(
        totalNodes=len(reports),
        onlineNodes=online,
        offlineNodes=len(reports) - online,
        overallHealth=percentage(online, len(reports)),
        documentsIndexed=docs,
        indexSizeBytes=size,
    )


MEMBER_STATUSES = ("green", "yellow", "red")


def fold_ensemble_statuses(statuses: Iterable[EnsembleStatus], total: int, connected: int) -> EnsembleStatus:
    """
    Cluster-wide ensemble status from per-datacenter ones.

    Only a datacenter where some member answered counts as responded. An
    empty report next to an unreachable ensemble is ``unreachable``, never ``red``.
    """
    statuses = list(statuses)
    if any(s in MEMBER_STATUSES for s in statuses):
        return ensemble_status(total, connected, True)
    if statuses and all(s == "unknown" for s in statuses):
        return "unknown"
    return "unreachable"


def summarize_ensembles(summaries: Sequence[DatacenterZkSummary]) -> ClusterZkSummary:
    total = sum(s.totalMembers for s in summaries)
    connected = sum(s.connectedMembers for s in summaries)
    reachable = sum(1 for s in summaries if s.overallStatus != "unreachable")
    modes = {s.mode for s in summaries if s.mode != "unknown"}
    mode: EnsembleMode = modes.pop() if len(modes) == 1 else "unknown"
    return ClusterZkSummary(
        totalMembers=total,
        connectedMembers=connected,
        totalDatacenters=len(summaries),
        reachableDatacenters=reachable,
        overallStatus=fold_ensemble_statuses((s.overallStatus for s in summaries), total, connected),
        mode=mode,
    )


def summarize_cluster(datacenters: Sequence[DatacenterHealthSummary]) -> ClusterSummary:
    total_nodes = sum(dc.nodeCount for dc in datacenters)
    online_nodes = sum(dc.onlineNodes for dc in datacenters)
    zk_total = sum(dc.zkNodeCount for dc in datacenters)
    zk_connected = sum(dc.connectedZkNodes for dc in datacenters)
    return ClusterSummary(
        totalDatacenters=len(datacenters),
        healthyDatacenters=sum(1 for dc in datacenters if dc.healthStatus == "online"),
        degradedDatacenters=sum(1 for dc in datacenters if dc.healthStatus == "degraded"),
        offlineDatacenters=sum(1 for dc in datacenters if dc.healthStatus == "offline"),
        totalNodes=total_nodes,
        totalOnlineNodes=online_nodes,
        totalZkMembers=zk_total,
        totalConnectedZkMembers=zk_connected,
        zkStatus=fold_ensemble_statuses((dc.zkStatus for dc in datacenters), zk_total, zk_connected),
        overallHealth=percentage(online_nodes, total_nodes),
    )
