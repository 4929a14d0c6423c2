# solrlens/services/topology_store.py
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from solrlens.core.config import Settings
from solrlens.core.exceptions import ConfigurationError
from solrlens.domain.models.topology import Topology

logger = logging.getLogger(__name__)


def parse_topology(raw: str, source: str) -> Topology:
    """Parse and validate a JSON topology document."""
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid topology JSON in {source}: {exc}") from exc
    try:
        topology = Topology.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid topology in {source}: {exc}") from exc

    defaults = [dc.name for dc in topology.datacenters if dc.is_default]
    if len(defaults) > 1:
        logger.warning(
            "Several datacenters are flagged default (%s); using '%s'",
            ", ".join(defaults), defaults[0],
        )
    return topology


def load_topology(settings: Settings) -> Topology:
    """
    Load the topology from the inline JSON variable, else from the file path.

    Raises
    ------
    ConfigurationError
        Neither source is configured, the file is unreadable, or the
        document is not a valid topology.
    """
    if settings.dc_config_json:
        return parse_topology(settings.dc_config_json, "DC_CONFIG_JSON")
    if not settings.dc_config_path:
        raise ConfigurationError(
            "DC_CONFIG_JSON or DC_CONFIG_PATH must be set to describe the datacenter topology"
        )
    path = Path(settings.dc_config_path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Failed to read datacenter config from {path}: {exc}") from exc
    return parse_topology(raw, str(path))


class TopologyStore:
    """
    Holds the current topology snapshot.

    ``reload()`` swaps the reference in one assignment; readers call
    ``snapshot()`` once per request and keep the returned value.
    A failed reload keeps the last good snapshot.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._topology: Optional[Topology] = None
        self._error: Optional[ConfigurationError] = None

    def reload(self) -> Topology | None:
        try:
            topology = load_topology(self._settings)
        except ConfigurationError as exc:
            self._error = exc
            if self._topology is None:
                logger.error("Topology unavailable: %s", exc.detail)
            else:
                logger.error("Topology reload failed, keeping previous snapshot: %s", exc.detail)
            return self._topology
        self._topology = topology
        self._error = None
        logger.info(
            "Loaded topology: %d datacenter(s), %d node(s)",
            len(topology.datacenters), sum(1 for _ in topology.iter_nodes()),
        )
        return topology

    def snapshot(self) -> Topology:
        """Return the current topology or raise the load error."""
        if self._topology is None:
            raise self._error or ConfigurationError("Topology has not been loaded")
        return self._topology

    async def refresh_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.reload()
