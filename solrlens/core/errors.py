import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from solrlens.core.exceptions import ProblemDetail, SolrLensError, UpstreamRejected

logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"


def _problem(status: int, title: str, detail: str) -> dict:
    return ProblemDetail(title=title, status=status, detail=detail, error=detail).model_dump(mode="json")


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(UpstreamRejected)
    async def upstream_rejected_handler(_: Request, exc: UpstreamRejected):
        # Relay the node's own answer for passthrough endpoints
        return JSONResponse(status_code=exc.status_code, content={"error": exc.body})

    @app.exception_handler(SolrLensError)
    async def solrlens_error_handler(request: Request, exc: SolrLensError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_problem().model_dump(mode="json"),
            media_type=PROBLEM_JSON,
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Request, exc: ValueError):
        return JSONResponse(status_code=400, content=_problem(400, "Bad Request", str(exc)), media_type=PROBLEM_JSON)

    # Catch-all
    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=_problem(500, "Internal Server Error", str(exc)), media_type=PROBLEM_JSON)
