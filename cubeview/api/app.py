"""
HTTP query API.

Endpoints:
    GET  /health/live        process is up
    GET  /health/ready       database reachable (503 otherwise)
    GET  /api/v1/meta        cubes, measures and dimensions
    GET  /api/v1/load        ?query=<url-encoded JSON>
    POST /api/v1/load        {"query": {...}}

Endpoints are sync so FastAPI runs them in its threadpool; each request
borrows a pooled connection through the executor.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import psycopg
from fastapi import Depends, FastAPI, Query as QueryParam, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from starlette.responses import JSONResponse

from cubeview import __version__
from cubeview.config import get_settings
from cubeview.errors import QueryError
from cubeview.semantic.executor import QueryExecutor
from cubeview.semantic.model import DataModel, get_model
from cubeview.utils.logging import get_logger

log = get_logger(__name__)


class LoadRequest(BaseModel):
    query: Dict[str, Any]


def get_executor(request: Request) -> QueryExecutor:
    return request.app.state.executor


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(QueryError)
    async def _query_error(request: Request, exc: QueryError) -> JSONResponse:
        log.info("Rejected query", extra={"path": request.url.path, "reason": str(exc)})
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {"msg": "invalid request"}
        return _error(400, f"invalid request: {first['msg']}")

    @app.exception_handler(psycopg.Error)
    async def _database_error(request: Request, exc: psycopg.Error) -> JSONResponse:
        log.error(
            "Database error while serving request",
            extra={"path": request.url.path, "error_type": type(exc).__name__},
            exc_info=exc,
        )
        return _error(502, f"database error: {type(exc).__name__}")

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        log.error("Unhandled error", extra={"path": request.url.path}, exc_info=exc)
        return _error(500, "internal error")


def create_app(
    executor: Optional[QueryExecutor] = None,
    model: Optional[DataModel] = None,
) -> FastAPI:
    """
    Build the API application.

    Parameters
    ----------
    executor : QueryExecutor, optional
        Query executor to serve from. Defaults to one backed by the shared
        connection pool and the configured model.
    model : DataModel, optional
        Model used when `executor` is not given. Defaults to `MODEL_PATH` or
        the built-in Records model.

    Raises
    ------
    ModelError
        If the configured model file cannot be loaded.
    """
    settings = get_settings()
    if executor is None:
        executor = QueryExecutor(model or get_model(settings.model_path))

    app = FastAPI(title="cubeview", version=__version__)
    app.state.executor = executor
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)

    @app.get("/health/live")
    def live() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/health/ready")
    def ready(executor: QueryExecutor = Depends(get_executor)):
        try:
            executor.ping()
        except psycopg.Error as exc:
            log.warning("Readiness check failed", extra={"error_type": type(exc).__name__})
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "problems": [f"database:{type(exc).__name__}"]},
            )
        return {"status": "ready"}

    @app.get("/api/v1/meta")
    def meta(executor: QueryExecutor = Depends(get_executor)) -> Dict[str, Any]:
        return executor.model.meta()

    @app.get("/api/v1/load")
    def load_get(
        query: str = QueryParam(..., description="JSON-encoded query"),
        executor: QueryExecutor = Depends(get_executor),
    ) -> Dict[str, Any]:
        return executor.load(query)

    @app.post("/api/v1/load")
    def load_post(
        body: LoadRequest,
        executor: QueryExecutor = Depends(get_executor),
    ) -> Dict[str, Any]:
        return executor.load(body.query)

    return app


__all__ = ["LoadRequest", "create_app", "get_executor"]
