# server.py
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from solrlens.api.routers import api_router, security_router
from solrlens.core.config import settings
from solrlens.core.errors import install_exception_handlers
from solrlens.services.topology_store import TopologyStore
from solrlens.ws.manager import WSManager

logger = logging.getLogger("solrlens")


# Lifespan handler replaces @app.on_event("startup"/"shutdown")
@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # One pooled client for every upstream call; timeouts are set per call
    app.state.http_client = httpx.AsyncClient()

    # A missing or broken topology does not stop startup; requests answer 500
    app.state.topology_store = TopologyStore(settings)
    app.state.topology_store.reload()

    tasks = []
    if settings.topology_refresh_sec:
        tasks.append(asyncio.create_task(app.state.topology_store.refresh_loop(settings.topology_refresh_sec)))

    app.state.ws_manager = WSManager(app.state.topology_store, app.state.http_client, settings)
    if settings.ws_enabled:
        tasks.append(asyncio.create_task(app.state.ws_manager.broadcast_summary_loop()))

    logger.info("SolrLens API ready under %s", settings.api_prefix)
    try:
        yield
    finally:
        for task in tasks:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await app.state.http_client.aclose()


app = FastAPI(
    title="SolrLens API",
    version="1.0.0",
    lifespan=lifespan,
    # Put OpenAPI/docs under the REST prefix
    openapi_url=f"{settings.api_prefix}/openapi.json",
    docs_url=f"{settings.api_prefix}/docs",
    redoc_url=f"{settings.api_prefix}/redoc",
)

# --- CORS: allow the dashboard during development (configurable via settings.cors_allow_origins) ---
allow_origins = settings.cors_allow_origins or [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_exception_handlers(app)

app.include_router(api_router, prefix=settings.api_prefix)
app.include_router(security_router, prefix=settings.security_prefix, tags=["security"])

if settings.metrics_enabled:
    from solrlens.api import metrics as metrics_router
    # metrics lives at /metrics (Prometheus convention)
    app.include_router(metrics_router.router, prefix="")


@app.get("/health")
async def health() -> dict:
    return {"status": "OK", "message": "SolrLens Backend is running"}


# WebSocket route (note: not under the REST prefix)
@app.websocket("/ws/v1/stream")
async def ws_stream(ws: WebSocket):
    ws_manager: WSManager = app.state.ws_manager
    await ws_manager.connect(ws)
    try:
        # No inbound messages yet; keep connection open
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        ws_manager.disconnect(ws)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=True)
