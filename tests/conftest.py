"""
Shared fixtures: a two-datacenter topology and a fake Solr fleet.

``FakeSolr`` is an httpx transport keyed by ``host:port`` and request path.
Hosts can be marked down (connect error) or slow (connect timeout); unknown
paths answer 404.
"""
from __future__ import annotations

import copy
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import Request, Response

from solrlens.core.config import Settings
from solrlens.domain.models.topology import Topology

SYSTEM_INFO: dict[str, Any] = {
    "responseHeader": {"status": 0},
    "mode": "solrcloud",
    "zkHost": "zk1:2181,zk2:2181,zk3:2181",
    "lucene": {"solr-spec-version": "9.4.0", "lucene-spec-version": "9.8.0"},
    "jvm": {
        "processors": 4,
        "memory": {"raw": {"used": 512, "max": 1024, "used%": 50.0}},
        "jmx": {"upTimeMS": 3600000},
    },
    "system": {
        "totalPhysicalMemorySize": 2000,
        "freePhysicalMemorySize": 500,
        "openFileDescriptorCount": 10,
        "maxFileDescriptorCount": 100,
        "systemLoadAverage": 0.5,
    },
}

METRICS: dict[str, Any] = {
    "metrics": {
        "solr.core.products.shard1.replica_n1": {
            "SEARCHER.searcher.numDocs": 100,
            "INDEX.sizeInBytes": 2048,
        },
        "solr.core.orders.shard1.replica_n1": {
            "SEARCHER.searcher.numDocs": 50,
            "INDEX.sizeInBytes": 1024,
        },
        "solr.jvm": {"SEARCHER.searcher.numDocs": 999},
    }
}


def zk_member(host: str, ok: bool = True, state: str = "follower", server_id: int = 1) -> dict:
    return {
        "host": host,
        "ok": ok,
        "zk_server_state": state,
        "zk_version": "3.9.1",
        "zk_num_alive_connections": "5",
        "zk_avg_latency": "0.25",
        "clientPort": "2181",
        "serverId": server_id,
    }


def zk_status(*members: dict, mode: str = "ensemble") -> dict:
    return {
        "zkStatus": {
            "zkHost": ",".join(m["host"] for m in members),
            "mode": mode,
            "status": "green",
            "ensembleSize": len(members),
            "dynamicReconfig": True,
            "details": list(members),
        }
    }


DC1_ZK = zk_status(
    zk_member("zk1:2181", state="leader", server_id=1),
    zk_member("zk2:2181", server_id=2),
    zk_member("zk3:2181", server_id=3),
)

TOPOLOGY_DOC = {
    "datacenters": [
        {
            "name": "London",
            "default": True,
            "zookeeperNodes": [
                {"host": "zk1", "port": 2181},
                {"host": "zk2", "port": 2181},
                {"host": "zk3", "port": 2181},
            ],
            "nodes": [
                {"name": "solr1", "host": "solr1", "port": 8983},
                {"name": "solr2", "host": "solr2", "port": 8982},
            ],
        },
        {
            "name": "Paris",
            "zookeeperNodes": [{"host": "zk4", "port": 2181}],
            "nodes": [{"name": "solr3", "host": "solr3", "port": 8983}],
        },
    ]
}


# A datacenter literally named "all" next to an ordinary one
ALL_NAMED_DOC = {
    "datacenters": [
        {"name": "all", "nodes": [{"name": "a1", "host": "a1", "port": 8983}]},
        {"name": "Paris", "nodes": [{"name": "p1", "host": "p1", "port": 8983}]},
    ]
}

LOGGING: dict[str, Any] = {
    "responseHeader": {"status": 0},
    "levels": ["ALL", "TRACE", "DEBUG", "INFO", "WARN", "ERROR", "FATAL", "OFF"],
    "loggers": [
        {"name": "root", "level": "INFO", "set": True},
        {"name": "org.apache.solr.core", "level": None, "set": False},
    ],
    "watcher": "Log4j2 (org.apache.logging.slf4j.Log4jLoggerFactory)",
}

class FakeSolr(httpx.AsyncBaseTransport):
    """Routes requests by ``(host:port, path)``; paths are given without ``/solr``."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.down: set[str] = set()
        self.slow: set[str] = set()
        self.requests: list[Request] = []

    def add(self, netloc: str, path: str, payload: Any, status: int = 200) -> "FakeSolr":
        self.routes[(netloc, f"/solr{path}")] = (status, copy.deepcopy(payload))
        return self

    def healthy(self, netloc: str, zk: dict | None = None) -> "FakeSolr":
        self.add(netloc, "/admin/info/system", SYSTEM_INFO)
        self.add(netloc, "/admin/metrics", METRICS)
        self.add(netloc, "/admin/ping", {"status": "OK"})
        if zk is not None:
            self.add(netloc, "/admin/zookeeper/status", zk)
        return self

    def hits(self, netloc: str, path: str) -> int:
        return sum(
            1 for r in self.requests
            if f"{r.url.host}:{r.url.port}" == netloc and r.url.path == f"/solr{path}"
        )

    async def handle_async_request(self, request: Request) -> Response:
        self.requests.append(request)
        netloc = f"{request.url.host}:{request.url.port}"
        if netloc in self.slow:
            raise httpx.ConnectTimeout("timed out", request=request)
        if netloc in self.down:
            raise httpx.ConnectError("connection refused", request=request)
        route = self.routes.get((netloc, request.url.path))
        if route is None:
            return Response(status_code=404, json={"error": "not found"}, request=request)
        status, payload = route
        return Response(status_code=status, json=payload, request=request)


@pytest.fixture
def topology() -> Topology:
    return Topology.model_validate(TOPOLOGY_DOC)


@pytest.fixture
def fake_solr() -> FakeSolr:
    return FakeSolr()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest_asyncio.fixture
async def http(fake_solr):
    async with httpx.AsyncClient(transport=fake_solr) as client:
        yield client
