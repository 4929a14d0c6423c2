"""Static datacenter topology: datacenters, their Solr nodes and ZooKeeper hosts.

Instances are frozen. A request reads one ``Topology`` snapshot and never
sees a half-updated datacenter list.
"""
from __future__ import annotations

from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EnsembleHost(BaseModel):
    """One configured ZooKeeper host."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = Field(2181, ge=1, le=65535)

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class NodeRef(BaseModel):
    """One configured Solr node; ``name`` is unique within its datacenter."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    host: str
    port: int = Field(..., ge=1, le=65535)

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}/solr"


class Datacenter(BaseModel):
    """A datacenter as written in the topology file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1)
    is_default: bool = Field(False, alias="default")
    ensemble_hosts: Tuple[EnsembleHost, ...] = Field(default=(), alias="zookeeperNodes")
    nodes: Tuple[NodeRef, ...] = ()

    @model_validator(mode="after")
    def _unique_node_names(self) -> "Datacenter":
        seen: set[str] = set()
        for node in self.nodes:
            if node.name in seen:
                raise ValueError(f"Duplicate node '{node.name}' in datacenter '{self.name}'")
            seen.add(node.name)
        return self

    @property
    def default_node(self) -> NodeRef | None:
        """First node by configured order."""
        return self.nodes[0] if self.nodes else None

    def node_id(self, node: NodeRef) -> str:
        return node_id(node.name, self.name)

    def find_node(self, name: str) -> NodeRef | None:
        for node in self.nodes:
            if node.name == name:
                return node
        return None


class Topology(BaseModel):
    """The whole fleet: an ordered list of datacenters."""

    model_config = ConfigDict(frozen=True)

    datacenters: Tuple[Datacenter, ...] = ()

    @model_validator(mode="after")
    def _unique_keys(self) -> "Topology":
        names: set[str] = set()
        ids: dict[str, str] = {}
        for dc in self.datacenters:
            if dc.name in names:
                raise ValueError(f"Duplicate datacenter '{dc.name}'")
            names.add(dc.name)
            for node in dc.nodes:
                nid = dc.node_id(node)
                if nid in ids:
                    raise ValueError(
                        f"Node id '{nid}' of datacenter '{dc.name}' collides with datacenter '{ids[nid]}'"
                    )
                ids[nid] = dc.name
        return self

    @property
    def datacenter_names(self) -> list[str]:
        return [dc.name for dc in self.datacenters]

    @property
    def default_datacenter(self) -> Datacenter | None:
        """First datacenter flagged ``default``; falls back to the first one."""
        for dc in self.datacenters:
            if dc.is_default:
                return dc
        return self.datacenters[0] if self.datacenters else None

    def iter_nodes(self):
        """Yield ``(datacenter, node)`` pairs in configured order."""
        for dc in self.datacenters:
            for node in dc.nodes:
                yield dc, node

    def to_config(self) -> dict:
        """Render back to the topology-file shape."""
        return self.model_dump(mode="json", by_alias=True)


def node_id(node_name: str, datacenter_name: str) -> str:
    """Stable external key for a node, unique across the topology."""
    return f"{node_name}-{datacenter_name.lower()}"
