"""Resolve a request's ``{datacenter, node}`` selector to probe targets."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from solrlens.core.exceptions import NotFoundError
from solrlens.domain.models.topology import Datacenter, NodeRef, Topology

ALL_DATACENTERS = "all"


@dataclass(frozen=True)
class Target:
    """One node to probe, with the datacenter it belongs to."""

    datacenter: Datacenter
    node: NodeRef

    @property
    def node_id(self) -> str:
        return self.datacenter.node_id(self.node)

    @property
    def is_default(self) -> bool:
        return self.datacenter.default_node == self.node


class QueryResolver:
    """Narrows one topology snapshot; every lookup is in configured order."""

    def __init__(self, topology: Topology) -> None:
        self._topology = topology

    @property
    def topology(self) -> Topology:
        return self._topology

    def find_datacenter(self, name: str, *, ignore_case: bool = False) -> Datacenter:
        """Exact name match first; *ignore_case* then falls back to a casefolded one."""
        for dc in self._topology.datacenters:
            if dc.name == name:
                return dc
        if ignore_case:
            folded = name.casefold()
            for dc in self._topology.datacenters:
                if dc.name.casefold() == folded:
                    return dc
        raise NotFoundError(f"Datacenter '{name}' not found")

    def is_all(self, datacenter: Optional[str]) -> bool:
        """``"all"`` is the no-filter alias unless a datacenter really has that name."""
        if datacenter != ALL_DATACENTERS:
            return False
        return all(dc.name != datacenter for dc in self._topology.datacenters)

    def datacenter_targets(self, dc: Datacenter, *, load_all: bool = True) -> list[Target]:
        targets = [Target(dc, n) for n in dc.nodes]
        if not load_all:
            targets = [t for t in targets if t.is_default]
        return targets

    def find_node(self, name: str) -> Target:
        """First node called *name* in any datacenter."""
        for dc, node in self._topology.iter_nodes():
            if node.name == name:
                return Target(dc, node)
        raise NotFoundError(f"Node '{name}' not found in any datacenter")

    def find_node_by_id(self, node_id: str) -> Target:
        for dc, node in self._topology.iter_nodes():
            if dc.node_id(node) == node_id:
                return Target(dc, node)
        raise NotFoundError(f"Node '{node_id}' not found")

    def resolve(
        self,
        datacenter: Optional[str] = None,
        node: Optional[str] = None,
        *,
        load_all: bool = True,
    ) -> list[Target]:
        """
        Return the ordered targets for a selector.

        Parameters
        ----------
        datacenter : str | None
            Restrict to one datacenter; empty means no restriction, and so
            does ``"all"`` unless a datacenter is configured under that name.
        node : str | None
            Restrict to the node with this name.
        load_all : bool
            When False and no node is named, keep only each datacenter's
            default (first) node.

        Raises
        ------
        NotFoundError
            The datacenter does not exist, or the node is not in it / anywhere.
        """
        if self.is_all(datacenter):
            datacenter = None

        if datacenter and node:
            dc = self.find_datacenter(datacenter)
            ref = dc.find_node(node)
            if ref is None:
                raise NotFoundError(f"Node '{node}' not found in datacenter '{datacenter}'")
            targets = [Target(dc, ref)]
        elif datacenter:
            dc = self.find_datacenter(datacenter)
            targets = [Target(dc, n) for n in dc.nodes]
        elif node:
            targets = [self.find_node(node)]
        else:
            targets = [Target(dc, n) for dc, n in self._topology.iter_nodes()]

        # an explicit node selector is never narrowed away
        if not load_all and not node:
            targets = [t for t in targets if t.is_default]
        return targets
