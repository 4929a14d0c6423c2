"""RFC 7807 *Problem Details* model and the service's exception taxonomy.

Only topology resolution and configuration failures are meant to escape a
request. Upstream failures of individual probes are converted to result
values at the probe boundary; ``UpstreamUnavailable`` is raised only by
single-target endpoints that have nothing to fall back to.
"""
from __future__ import annotations

from typing import Any, Optional
from uuid import uuid4

from fastapi import status
from pydantic import BaseModel, ConfigDict, Field


class ProblemDetail(BaseModel):
    """Data model that serialises to RFC 7807 JSON.

    Attributes
    ----------
    type : str
        A URI reference that identifies the problem type.
    title : str
        A short human-readable summary of the problem type.
    status : int
        The HTTP status code.
    detail : str | None
        A human-readable explanation specific to this occurrence.
    instance : str
        A URI reference that identifies the specific occurrence.
    error : str | None
        Same text as *detail*; the dashboard reads this key.
    """

    model_config = ConfigDict(json_schema_extra={"required": ["type", "title", "status"]})

    type: str = Field(default="about:blank", examples=["/not-found"])
    title: str
    status: int = Field(..., ge=400, le=599)
    detail: Optional[str] = None
    instance: str = Field(default_factory=lambda: f"urn:uuid:{uuid4()}")
    error: Optional[str] = None


class SolrLensError(Exception):
    """Base class; subclasses pin the HTTP status and problem title."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    title: str = "Internal Server Error"
    type_: str = "about:blank"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def to_problem(self) -> ProblemDetail:
        return ProblemDetail(
            type=self.type_,
            title=self.title,
            status=self.status_code,
            detail=self.detail,
            error=self.detail,
        )


class NotFoundError(SolrLensError):
    """A datacenter or node named by the request is not in the topology."""

    status_code = status.HTTP_404_NOT_FOUND
    title = "Not Found"
    type_ = "/not-found"


class ConfigurationError(SolrLensError):
    """The topology could not be loaded or failed validation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    title = "Configuration Error"
    type_ = "/configuration-error"


class UpstreamUnavailable(SolrLensError):
    """A Solr node could not be reached, timed out or answered with an error."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    title = "Upstream Unavailable"
    type_ = "/upstream-unavailable"

    def __init__(self, detail: str, *, target: str | None = None) -> None:
        super().__init__(detail)
        self.target = target


class CandidatesExhausted(UpstreamUnavailable):
    """Every candidate node of a first-reachable lookup failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    title = "No Reachable Node"
    type_ = "/candidates-exhausted"


class UpstreamRejected(SolrLensError):
    """A node answered a passthrough call with an HTTP error status.

    The upstream status and body are relayed unchanged.
    """

    title = "Upstream Rejected"
    type_ = "/upstream-rejected"

    def __init__(self, status_code: int, body: Any) -> None:
        super().__init__(body if isinstance(body, str) else str(body))
        self.status_code = status_code
        self.body = body
