"""Health documents served to the dashboard.

Field names are camelCase because the JSON is consumed as-is by the
frontend. Everything here is built fresh per request and never stored.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

NodeStatus = Literal["online", "offline", "error"]
DatacenterHealth = Literal["online", "degraded", "offline"]
MemberStatus = Literal["connected", "disconnected", "unknown"]
MemberRole = Literal["leader", "follower", "observer", "standalone", "unknown"]
EnsembleMode = Literal["standalone", "ensemble", "unknown"]
EnsembleStatus = Literal["green", "yellow", "red", "unreachable", "unknown"]


# ---------- Node ----------

class JvmMemory(BaseModel):
    usedBytes: int = 0
    maxBytes: int = 0
    usedPercent: float = 0.0


class PhysicalMemory(BaseModel):
    totalBytes: int = 0
    freeBytes: int = 0
    usedPercent: float = 0.0


class FileDescriptors(BaseModel):
    open: int = 0
    max: int = 0
    usedPercent: float = 0.0


class Versions(BaseModel):
    engineVersion: Optional[str] = None   # solr-spec-version
    coreLibVersion: Optional[str] = None  # lucene-spec-version


class SystemInfo(BaseModel):
    mode: str = "unknown"
    zkHost: Optional[str] = None
    jvmMemory: JvmMemory = Field(default_factory=JvmMemory)
    physicalMemory: PhysicalMemory = Field(default_factory=PhysicalMemory)
    uptimeMs: int = 0
    processorCount: int = 0
    loadAverage: Optional[float] = None
    fileDescriptors: FileDescriptors = Field(default_factory=FileDescriptors)
    versions: Versions = Field(default_factory=Versions)


class MetricsSummary(BaseModel):
    documentsIndexed: int = 0
    indexSizeBytes: int = 0


class NodeHealth(BaseModel):
    status: NodeStatus
    systemInfo: Optional[SystemInfo] = None
    metricsSummary: Optional[MetricsSummary] = None
    error: Optional[str] = None


class NodeReport(NodeHealth):
    """``NodeHealth`` plus the node's identity in the topology."""

    id: str
    name: str
    url: str
    datacenter: str
    host: str
    port: int
    default: bool = False


class NodeSystemInfo(BaseModel):
    """Raw ``/admin/info/system`` passthrough for one node."""

    id: str
    name: str
    url: str
    datacenter: str
    status: NodeStatus
    systemInfo: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class NodesRollup(BaseModel):
    totalNodes: int = 0
    onlineNodes: int = 0
    offlineNodes: int = 0
    overallHealth: float = 0.0
    documentsIndexed: int = 0
    indexSizeBytes: int = 0


class NodesResponse(BaseModel):
    nodes: List[NodeReport]
    datacenters: List[str]
    loadedDefaults: bool
    summary: NodesRollup


# ---------- Coordination ensemble ----------

class EnsembleMemberHealth(BaseModel):
    hostname: str
    port: int
    status: MemberStatus = "unknown"
    role: MemberRole = "unknown"
    serverId: Optional[str] = None
    version: Optional[str] = None
    activeConnections: Optional[int] = None
    avgLatencyMs: Optional[float] = None
    clientPort: Optional[int] = None


class DatacenterZkSummary(BaseModel):
    datacenter: str
    members: List[EnsembleMemberHealth] = Field(default_factory=list)
    totalMembers: int = 0
    connectedMembers: int = 0
    mode: EnsembleMode = "unknown"
    ensembleSize: int = 0
    overallStatus: EnsembleStatus = "unknown"
    upstreamStatus: Optional[str] = None
    dynamicReconfigEnabled: bool = False
    connectionString: str = ""
    errors: List[str] = Field(default_factory=list)
    retrievedFromHost: Optional[str] = None
    # index-aligned with ``members``
    rawDetails: List[Dict[str, Any]] = Field(default_factory=list)


class ClusterZkSummary(BaseModel):
    totalMembers: int = 0
    connectedMembers: int = 0
    totalDatacenters: int = 0
    reachableDatacenters: int = 0
    overallStatus: EnsembleStatus = "unknown"
    mode: EnsembleMode = "unknown"


class ZookeeperOverview(BaseModel):
    datacenters: Dict[str, DatacenterZkSummary]
    summary: ClusterZkSummary


class ZookeeperDetails(BaseModel):
    datacenter: str
    retrievedFrom: str
    zkStatus: Dict[str, Any]
    timestamp: str


# ---------- Datacenter / cluster roll-ups ----------

class DatacenterHealthSummary(BaseModel):
    name: str
    nodeCount: int
    onlineNodes: int
    healthStatus: DatacenterHealth
    zkNodeCount: int = 0
    connectedZkNodes: int = 0
    hasZooKeeper: bool = False
    zkHealthy: bool = False
    zkStatus: EnsembleStatus = "unknown"
    sampleNodeUrl: Optional[str] = None
    configuredNodes: List[str] = Field(default_factory=list)


class ClusterSummary(BaseModel):
    totalDatacenters: int = 0
    healthyDatacenters: int = 0
    degradedDatacenters: int = 0
    offlineDatacenters: int = 0
    totalNodes: int = 0
    totalOnlineNodes: int = 0
    totalZkMembers: int = 0
    totalConnectedZkMembers: int = 0
    zkStatus: EnsembleStatus = "unknown"
    overallHealth: float = 0.0


class DatacentersSummaryResponse(BaseModel):
    datacenters: List[DatacenterHealthSummary]
    summary: ClusterSummary
    timestamp: str


class DatacenterDetailSummary(BaseModel):
    totalNodes: int
    onlineNodes: int
    healthPercentage: float
    status: DatacenterHealth


class DatacenterDetail(BaseModel):
    datacenter: str
    nodes: List[NodeReport]
    zkInfo: Optional[ZookeeperDetails] = None
    config: Dict[str, Any]
    summary: DatacenterDetailSummary
    timestamp: str


class DatacenterNodes(BaseModel):
    """Full node probe for one datacenter (``/datacenter/{dc}/nodes``)."""

    datacenter: str
    status: Literal["success"] = "success"
    nodes: List[NodeReport]
    summary: NodesRollup


# ---------- Logging ----------

LOG_LEVELS = ["ALL", "TRACE", "DEBUG", "INFO", "WARN", "ERROR", "FATAL", "OFF"]


class RootLogger(BaseModel):
    level: str = "WARN"


class LoggingInfo(BaseModel):
    levels: List[str] = Field(default_factory=lambda: list(LOG_LEVELS))
    loggers: List[Dict[str, Any]] = Field(default_factory=list)
    watcher: str = "Unknown"
    rootLogger: RootLogger = Field(default_factory=RootLogger)


class NodeLogging(BaseModel):
    nodeId: str
    nodeName: str
    host: str
    port: int
    status: Literal["online", "error"]
    loggingInfo: Optional[LoggingInfo] = None
    error: Optional[str] = None
    timestamp: str


class DatacenterLogging(BaseModel):
    datacenter: str
    status: Literal["success"] = "success"
    nodes: List[NodeLogging]
    timestamp: str


class NodeLoggingDetail(BaseModel):
    nodeId: str
    nodeName: str
    host: str
    port: int
    loggingData: Dict[str, Any]
    timestamp: str


# ---------- Security summary ----------

class AuthenticationState(BaseModel):
    enabled: bool = False
    scheme: Optional[str] = None
    realm: Optional[str] = None


class AuthorizationState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    class_: Optional[str] = Field(None, alias="class")


class SslState(BaseModel):
    enabled: bool = False
    clientAuth: bool = False
    keyStore: Optional[str] = None
    trustStore: Optional[str] = None


class SecuritySummary(BaseModel):
    authentication: AuthenticationState = Field(default_factory=AuthenticationState)
    authorization: AuthorizationState = Field(default_factory=AuthorizationState)
    ssl: SslState = Field(default_factory=SslState)


class NodeSecurity(BaseModel):
    node: str
    security: SecuritySummary
    timestamp: str
