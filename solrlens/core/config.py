# solrlens/core/config.py
import json
from functools import lru_cache
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central application settings loaded from environment variables (and .env).

    Notes
    -----
    - Every variable takes the ``SOLRLENS_`` prefix. The topology variables
      also accept the bare ``DC_CONFIG_JSON`` / ``DC_CONFIG_PATH`` names used by
      existing deployments.
    - Timeouts are in seconds and are set per call site: roll-up views trade
      completeness for latency, detail views do the opposite.
    - `cors_allow_origins` accepts JSON array or comma-separated string.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SOLRLENS_",
        extra="ignore",
    )

    # ---------- Topology ----------
    dc_config_json: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SOLRLENS_DC_CONFIG_JSON", "DC_CONFIG_JSON"),
        description="Inline JSON topology; wins over dc_config_path.",
    )
    dc_config_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SOLRLENS_DC_CONFIG_PATH", "DC_CONFIG_PATH"),
        description="Path to a JSON topology file.",
    )
    topology_refresh_sec: int = Field(
        default=0, ge=0,
        description="Reload the topology on this interval; 0 disables reloading."
    )

    # ---------- HTTP surface ----------
    api_prefix: str = "/api/solr"
    security_prefix: str = "/api/security"

    # ---------- Probe timeouts (seconds) ----------
    node_probe_timeout: float = Field(default=5.0, gt=0)
    summary_timeout: float = Field(default=2.0, gt=0)
    zk_detail_timeout: float = Field(default=10.0, gt=0)
    cores_timeout: float = Field(default=4.0, gt=0)
    passthrough_timeout: float = Field(default=10.0, gt=0)

    # ---------- Fan-out ----------
    probe_concurrency: int = Field(
        default=0, ge=0,
        description="Max in-flight probes per batch; 0 means unbounded."
    )
    nodes_load_all_default: bool = Field(
        default=True,
        description="Default for the loadAll query flag on every node view."
    )

    # ---------- Observability ----------
    log_level: str = "INFO"
    metrics_enabled: bool = Field(
        default=False,
        description="Expose Prometheus gauges at /metrics."
    )

    # ---------- WebSocket ----------
    ws_enabled: bool = True
    ws_summary_tick: float = Field(default=15.0, gt=0)

    # ---------- CORS ----------
    cors_allow_origins: Annotated[list[str] | None, NoDecode] = None

    @field_validator("cors_allow_origins", mode="before")
    def _parse_cors_origins(cls, v):
        """Accept JSON array or comma-separated string."""
        if v is None:
            return None
        if isinstance(v, str):
            try:
                parsed = json.loads(v)  # JSON array
                if isinstance(parsed, list):
                    return [str(s).strip() for s in parsed if str(s).strip()]
            except ValueError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("api_prefix", "security_prefix")
    def _normalize_prefix(cls, v: str) -> str:
        v = v.strip()
        if not v:
            return ""
        return "/" + v.strip("/")


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
