# src/daybook/api/http.py

"""
HTTP transport for the procedure registry.

- POST /rpc/{procedure}: JSON body is the procedure input (empty body means {}),
  the response is {"result": ...}.
- GET /health: liveness.

The caller is identified by a request header (settings.user_header, "X-User-Id"
by default), set by whatever authenticating proxy sits in front of the service.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from ..core.errors import NotFound, UnknownProcedure, ValidationFailed
from ..core.state import AppState
from .procedures import ProcedureRegistry, registry as default_registry

logger = logging.getLogger(__name__)


def create_app(state: AppState, registry: ProcedureRegistry = default_registry) -> FastAPI:
    settings = state.settings
    app_name = str(getattr(settings, "app_name", "daybook"))
    user_header = str(getattr(settings, "user_header", "X-User-Id"))

    app = FastAPI(title=app_name, version="0.1.0")
    app.state.daybook = state

    @app.exception_handler(ValidationFailed)
    async def _validation_failed(_request: Request, exc: ValidationFailed) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "error": {
                    "code": "BAD_REQUEST",
                    "message": str(exc),
                    "fields": [e.to_dict() for e in exc.errors],
                }
            },
        )

    @app.exception_handler(NotFound)
    async def _not_found(_request: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": {"code": "NOT_FOUND", "message": str(exc)}})

    @app.exception_handler(UnknownProcedure)
    async def _unknown_procedure(_request: Request, exc: UnknownProcedure) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": {"code": "NOT_FOUND", "message": str(exc)}})

    @app.exception_handler(sqlite3.Error)
    async def _storage_error(request: Request, exc: sqlite3.Error) -> JSONResponse:
        logger.exception("Storage failure on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": {"code": "INTERNAL_SERVER_ERROR", "message": "Internal error"}},
        )

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "app": app_name}

    @app.post("/rpc/{procedure}")
    def call_procedure(
        procedure: str,
        request: Request,
        payload: dict[str, Any] | None = Body(default=None),
    ) -> dict[str, Any]:
        user_id = (request.headers.get(user_header) or "").strip()
        if not user_id:
            raise HTTPException(status_code=401, detail="Not authenticated")
        result = registry.call(state, user_id, procedure, payload)
        return {"result": result}

    return app
