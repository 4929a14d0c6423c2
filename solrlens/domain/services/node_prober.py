"""Per-node status probe: system info plus optional core metrics."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from solrlens.core.exceptions import UpstreamUnavailable
from solrlens.domain.models.health import (
    FileDescriptors,
    JvmMemory,
    LoggingInfo,
    LOG_LEVELS,
    MetricsSummary,
    NodeHealth,
    PhysicalMemory,
    RootLogger,
    SecuritySummary,
    SystemInfo,
    Versions,
)
from solrlens.domain.models.topology import NodeRef
from solrlens.domain.services.aggregator import percentage
from solrlens.infra.solr.client import SolrNodeClient
from solrlens.infra.solr.fields import read_float, read_int, read_str

logger = logging.getLogger(__name__)

CORE_REGISTRY_PREFIX = "solr.core."
NUM_DOCS_KEY = "SEARCHER.searcher.numDocs"
INDEX_SIZE_KEY = "INDEX.sizeInBytes"


@dataclass
class NodeProber:
    """
    Probes one Solr node at a time. Stateless and safe to share.

    Attributes:
        http: Shared httpx.AsyncClient.
    """

    http: httpx.AsyncClient

    def client(self, node: NodeRef) -> SolrNodeClient:
        return SolrNodeClient(http=self.http, node=node)

    async def probe(self, node: NodeRef, *, timeout: float, include_metrics: bool = True) -> NodeHealth:
        """
        System info decides the status; metrics only add the index roll-up.

        The two calls run concurrently and neither failure affects the other.
        """
        client = self.client(node)
        calls = [client.get_system_info(timeout=timeout)]
        if include_metrics:
            calls.append(client.get_metrics(timeout=timeout))
        results = await _settle(*calls)

        system = results[0]
        metrics = results[1] if include_metrics else None

        if isinstance(system, Exception):
            logger.warning("System info probe failed for %s: %s", node.name, system)
            health = NodeHealth(status="offline", error=_reason(system))
        else:
            health = NodeHealth(status="online", systemInfo=normalize_system_info(system))

        if metrics is not None:
            if isinstance(metrics, Exception):
                logger.info("Metrics probe failed for %s: %s", node.name, metrics)
            else:
                health.metricsSummary = summarize_metrics(metrics)
        return health

    async def probe_with_ping(self, node: NodeRef, *, timeout: float) -> NodeHealth:
        """
        Detail-view probe: the ping endpoint decides the status.

        A failed ping is reported as ``error``, never ``offline``.
        """
        client = self.client(node)
        ping, system = await _settle(client.ping(timeout=timeout), client.get_system_info(timeout=timeout))

        if isinstance(ping, Exception):
            logger.warning("Ping failed for %s: %s", node.name, ping)
            return NodeHealth(status="error", error=_reason(ping))
        if ping.get("status") != "OK":
            return NodeHealth(status="error", error="Health check failed")

        health = NodeHealth(status="online")
        if not isinstance(system, Exception):
            health.systemInfo = normalize_system_info(system)
        return health

    async def fetch_system_info(self, node: NodeRef, *, timeout: float) -> dict:
        """Raw system-info document; raises ``UpstreamUnavailable``."""
        return await self.client(node).get_system_info(timeout=timeout)

    async def fetch_logging(self, node: NodeRef, *, timeout: float) -> dict:
        """Raw logging document; anything but ``responseHeader.status == 0`` is a failure."""
        data = await self.client(node).get_logging(timeout=timeout)
        header = _section(data, "responseHeader")
        if read_int(header, "status").or_default(None) != 0:
            raise UpstreamUnavailable("Invalid logging response from Solr", target=node.name)
        return data

    async def inspect_security(self, node: NodeRef, *, timeout: float) -> SecuritySummary:
        """
        Best-effort security posture read from the node's JVM settings.

        An unreachable node keeps the defaults derived from its address.
        """
        try:
            raw = await self.fetch_system_info(node, timeout=timeout)
        except UpstreamUnavailable as exc:
            logger.warning("Could not fetch system info for security detection on %s: %s", node.name, exc.detail)
            raw = {}
        return detect_security(node, raw)


async def _settle(*calls) -> list[Any]:
    """Await all calls; failures come back as exception values."""
    results = await asyncio.gather(*calls, return_exceptions=True)
    for r in results:
        if isinstance(r, BaseException) and not isinstance(r, Exception):
            raise r
    return list(results)


def _reason(exc: Exception) -> str:
    if isinstance(exc, UpstreamUnavailable):
        return exc.detail
    return str(exc) or type(exc).__name__


# ---------- normalization ----------

def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, Mapping) else {}


def _unwrap_node_payload(data: Mapping[str, Any]) -> Mapping[str, Any]:
    """
    ``/admin/info/system`` answers either flat or keyed by node name
    (``{"responseHeader": ..., "host:8983_solr": {...}}``).
    """
    if "jvm" in data or "system" in data:
        return data
    for key, value in data.items():
        if key != "responseHeader" and isinstance(value, Mapping) and "jvm" in value:
            return value
    return data


def normalize_system_info(raw: Mapping[str, Any]) -> SystemInfo:
    data = _unwrap_node_payload(raw)
    jvm = _section(data, "jvm")
    mem_raw = _section(_section(jvm, "memory"), "raw")
    jmx = _section(jvm, "jmx")
    system = _section(data, "system")
    lucene = _section(data, "lucene")

    used = read_int(mem_raw, "used").or_default(0)
    max_bytes = read_int(mem_raw, "max").or_default(0)
    used_pct = read_float(mem_raw, "used%").or_default(None)
    if used_pct is None:
        used_pct = percentage(used, max_bytes)

    total_phys = read_int(system, "totalPhysicalMemorySize").or_default(0)
    free_phys = read_int(system, "freePhysicalMemorySize").or_default(0)
    fd_open = read_int(system, "openFileDescriptorCount").or_default(0)
    fd_max = read_int(system, "maxFileDescriptorCount").or_default(0)

    processors = read_int(jvm, "processors").or_default(None)
    if processors is None:
        processors = read_int(system, "availableProcessors").or_default(0)

    return SystemInfo(
        mode=read_str(data, "mode").or_default("unknown"),
        zkHost=read_str(data, "zkHost").or_default(None),
        jvmMemory=JvmMemory(usedBytes=used, maxBytes=max_bytes, usedPercent=used_pct),
        physicalMemory=PhysicalMemory(
            totalBytes=total_phys,
            freeBytes=free_phys,
            usedPercent=percentage(total_phys - free_phys, total_phys),
        ),
        uptimeMs=read_int(jmx, "upTimeMS").or_default(0),
        processorCount=processors,
        loadAverage=read_float(system, "systemLoadAverage").or_default(None),
        fileDescriptors=FileDescriptors(open=fd_open, max=fd_max, usedPercent=percentage(fd_open, fd_max)),
        versions=Versions(
            engineVersion=read_str(lucene, "solr-spec-version").or_default(None),
            coreLibVersion=read_str(lucene, "lucene-spec-version").or_default(None),
        ),
    )


def summarize_metrics(raw: Mapping[str, Any]) -> MetricsSummary:
    """Sum document counts and index sizes over every ``solr.core.*`` registry."""
    registries = _section(raw, "metrics")
    docs = 0
    size = 0
    for name, values in registries.items():
        if not name.startswith(CORE_REGISTRY_PREFIX) or not isinstance(values, Mapping):
            continue
        docs += read_int(values, NUM_DOCS_KEY).or_default(0)
        size += read_int(values, INDEX_SIZE_KEY).or_default(0)
    return MetricsSummary(documentsIndexed=docs, indexSizeBytes=size)


def summarize_logging(raw: Mapping[str, Any]) -> LoggingInfo:
    loggers = [lg for lg in raw.get("loggers") or [] if isinstance(lg, Mapping)]
    levels = [lv for lv in raw.get("levels") or [] if isinstance(lv, str)]
    root_level = next(
        (read_str(lg, "level").or_default(None) for lg in loggers if lg.get("name") == "root"), None
    )
    return LoggingInfo(
        levels=levels or list(LOG_LEVELS),
        loggers=[dict(lg) for lg in loggers],
        watcher=read_str(raw, "watcher").or_default(None) or "Unknown",
        rootLogger=RootLogger(level=root_level or "WARN"),
    )


def detect_security(node: NodeRef, raw: Mapping[str, Any]) -> SecuritySummary:
    """Keyword heuristics over the JVM section of a system-info document."""
    summary = SecuritySummary()
    summary.ssl.enabled = node.port == 8443 or "https" in node.host

    jvm = _section(_unwrap_node_payload(raw), "jvm")
    if not jvm:
        return summary
    text = json.dumps(jvm, default=str).lower()

    if "solr.authentication" in text or "basicauth" in text:
        summary.authentication.enabled = True
        summary.authentication.scheme = "BasicAuth"
    if "solr.authorization" in text or "rulebasedauthorization" in text:
        summary.authorization.enabled = True
        summary.authorization.class_ = "RuleBasedAuthorizationPlugin"
    if "ssl" in text or "https" in text or "keystore" in text:
        summary.ssl.enabled = True
        summary.ssl.clientAuth = "clientauth" in text
    return summary
