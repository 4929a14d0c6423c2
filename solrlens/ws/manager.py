from __future__ import annotations
import asyncio
import logging
from typing import Set

import httpx
from fastapi import WebSocket

from solrlens.core.config import Settings
from solrlens.core.exceptions import SolrLensError
from solrlens.domain.services.cluster_service import ClusterService
from solrlens.services.topology_store import TopologyStore

logger = logging.getLogger(__name__)


class WSManager:
    """Pushes the datacenter summary to every connected dashboard."""

    def __init__(self, store: TopologyStore, http: httpx.AsyncClient, settings: Settings) -> None:
        self.clients: Set[WebSocket] = set()
        self.store = store
        self.http = http
        self.settings = settings

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self.clients.add(ws)

    def disconnect(self, ws: WebSocket):
        self.clients.discard(ws)

    async def broadcast_summary_loop(self):
        tick = self.settings.ws_summary_tick
        while True:
            if not self.clients:
                await asyncio.sleep(max(2 * tick, 2.0))
                continue
            try:
                data = await self.build_summary()
            except SolrLensError as exc:
                logger.warning("Skipping summary push: %s", exc.detail)
            else:
                await self._broadcast({
                    "type": "event",
                    "channel": "datacenters",
                    "event": "datacenter.summary",
                    "data": data,
                })
            await asyncio.sleep(tick)

    async def build_summary(self) -> dict:
        svc = ClusterService(self.store.snapshot(), self.http, self.settings)
        summary = await svc.datacenters_summary()
        return summary.model_dump(mode="json")

    async def _broadcast(self, payload: dict):
        dead = []
        for ws in list(self.clients):
            try:
                await ws.send_json(payload)
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)
