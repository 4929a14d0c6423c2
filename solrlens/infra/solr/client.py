"""Solr node HTTP façade built on httpx.

One ``SolrNodeClient`` wraps one node's admin API. The ``httpx.AsyncClient``
is injected and shared across the whole process; per-call timeouts are passed
explicitly because each call site tunes latency differently.

Every transport failure, timeout, non-2xx answer or undecodable body is
raised as ``UpstreamUnavailable`` carrying a human-readable cause.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Literal, Mapping, Optional, Tuple, Union

import httpx

from solrlens.core.exceptions import UpstreamRejected, UpstreamUnavailable
from solrlens.domain.models.topology import NodeRef

# Metric families needed for the per-node roll-up
METRICS_PREFIX = ",".join(
    [
        "CONTAINER.fs",
        "org.eclipse.jetty.server.handler.DefaultHandler.get-requests",
        "INDEX.sizeInBytes",
        "SEARCHER.searcher.numDocs",
        "SEARCHER.searcher.deletedDocs",
        "SEARCHER.searcher.warmupTime",
    ]
)

SecurityKind = Literal["authentication", "authorization"]

# A mapping, or ordered pairs when a key repeats (``core=a&core=b``)
QueryParams = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def query_pairs(params: Optional[QueryParams]) -> list[tuple[str, Any]]:
    if params is None:
        return []
    if isinstance(params, Mapping):
        return list(params.items())
    return list(params)


def describe_error(exc: BaseException, url: str, timeout: float | None = None) -> str:
    """Turn an httpx/decoding failure into text fit for the dashboard."""
    if isinstance(exc, httpx.TimeoutException):
        if timeout is not None:
            return f"Timed out after {timeout:g}s contacting {url}"
        return f"Timed out contacting {url}"
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code} from {url}"
    if isinstance(exc, httpx.ConnectError):
        return f"Connection failed to {url}: {exc}"
    if isinstance(exc, ValueError):
        return f"Invalid JSON from {url}"
    return f"{type(exc).__name__} contacting {url}: {exc}"


@dataclass
class SolrNodeClient:
    """
    Admin API client for a single Solr node.

    Attributes:
        http: Shared httpx.AsyncClient (no base_url; URLs are absolute).
        node: The node to talk to.

    Example:
        async with httpx.AsyncClient() as http:
            client = SolrNodeClient(http=http, node=node)
            info = await client.get_system_info(timeout=5.0)
    """

    http: httpx.AsyncClient
    node: NodeRef

    @property
    def base_url(self) -> str:
        return self.node.base_url

    async def _get_json(
        self, path: str, *, timeout: float, params: Optional[QueryParams] = None
    ) -> dict:
        url = f"{self.base_url}{path}"
        query = [("wt", "json")] + [(k, v) for k, v in query_pairs(params) if k != "wt"]
        try:
            response = await self.http.get(url, params=query, timeout=timeout)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailable(describe_error(exc, url, timeout), target=self.node.name) from exc
        if not isinstance(data, dict):
            raise UpstreamUnavailable(f"Unexpected payload from {url}", target=self.node.name)
        return data

    # ---------- Node self-report ----------
    async def get_system_info(self, *, timeout: float) -> dict:
        """GET /admin/info/system."""
        return await self._get_json("/admin/info/system", timeout=timeout)

    async def get_metrics(self, *, timeout: float, prefix: Optional[str] = METRICS_PREFIX) -> dict:
        """GET /admin/metrics restricted to *prefix* families; ``None`` fetches them all."""
        params = {"prefix": prefix} if prefix else None
        return await self._get_json("/admin/metrics", timeout=timeout, params=params)

    async def ping(self, *, timeout: float) -> dict:
        """GET /admin/ping."""
        return await self._get_json("/admin/ping", timeout=timeout)

    async def get_properties(self, *, timeout: float) -> dict:
        """GET /admin/info/properties."""
        return await self._get_json("/admin/info/properties", timeout=timeout)

    async def get_logging(self, *, timeout: float, params: Optional[QueryParams] = None) -> dict:
        """GET /admin/info/logging (logger levels and the log watcher)."""
        return await self._get_json("/admin/info/logging", timeout=timeout, params=params)

    async def get_threads(self, *, timeout: float) -> dict:
        return await self._get_json("/admin/info/threads", timeout=timeout)

    async def get_cores(self, *, timeout: float, params: Optional[QueryParams] = None) -> dict:
        """GET /admin/cores; *params* override the ``indexInfo=false`` default."""
        pairs = query_pairs(params)
        if all(k != "indexInfo" for k, _ in pairs):
            pairs.insert(0, ("indexInfo", "false"))
        return await self._get_json("/admin/cores", timeout=timeout, params=pairs)

    # ---------- Coordination service (proxied by the node) ----------
    async def get_zookeeper_status(self, *, timeout: float) -> dict:
        """GET /admin/zookeeper/status."""
        return await self._get_json("/admin/zookeeper/status", timeout=timeout)

    async def get_zookeeper_tree(self, *, timeout: float) -> dict:
        """GET /admin/zookeeper, the znode browser."""
        return await self._get_json("/admin/zookeeper", timeout=timeout)

    # ---------- Security passthrough ----------
    async def get_security(self, kind: SecurityKind, *, timeout: float) -> dict:
        return await self._get_json(f"/admin/{kind}", timeout=timeout)

    async def post_security(self, kind: SecurityKind, body: Any, *, timeout: float) -> Any:
        """
        POST a security command to the node.

        Raises:
            UpstreamRejected: The node answered with an error status.
            UpstreamUnavailable: The node could not be reached.
        """
        url = f"{self.base_url}/admin/{kind}"
        try:
            response = await self.http.post(url, params={"wt": "json"}, json=body, timeout=timeout)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(describe_error(exc, url, timeout), target=self.node.name) from exc
        if response.is_error:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            raise UpstreamRejected(response.status_code, detail)
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamUnavailable(describe_error(exc, url), target=self.node.name) from exc
