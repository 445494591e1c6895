"""FastAPI application entry point."""

import json
import time
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from cricsim.config import get_settings
from cricsim.api.v1.router import api_router
from cricsim.errors import PreconditionError, SimulationError
from cricsim.logging_config import api_logger, generate_request_id

settings = get_settings()
VERSION = "0.1.0"

app = FastAPI(
    title="Cricket Match Simulation API",
    description="Ball-by-ball limited-overs and Test match simulation",
    version=VERSION,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

_UNLOGGED_PATHS = ("/health", "/", "/docs", "/redoc", "/openapi.json")


def _match_id_from_path(path: str) -> Optional[str]:
    """Match id from /api/v1/match/{id}/..., if present."""
    prefix = f"{settings.api_v1_prefix}/match/"
    if not path.startswith(prefix):
        return None
    rest = path[len(prefix):]
    return rest.split("/", 1)[0] or None


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every API request and its response status and timing."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in _UNLOGGED_PATHS:
            return await call_next(request)

        request_id = generate_request_id()
        started = time.perf_counter()

        payload = None
        if request.method == "POST":
            body = await request.body()
            if body:
                try:
                    payload = json.loads(body)
                except ValueError:
                    payload = {"_error": "Could not parse request body"}

        api_logger.log_request(
            request_id=request_id,
            endpoint=request.url.path,
            method=request.method,
            payload=payload,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            api_logger.log_response(
                request_id=request_id,
                endpoint=request.url.path,
                status_code=500,
                duration_ms=_elapsed_ms(started),
                error=f"{type(exc).__name__}: {exc}",
            )
            raise

        api_logger.log_response(
            request_id=request_id,
            endpoint=request.url.path,
            status_code=response.status_code,
            duration_ms=_elapsed_ms(started),
            match_id=_match_id_from_path(request.url.path),
        )
        response.headers["X-Request-ID"] = request_id
        return response


app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.exception_handler(SimulationError)
async def simulation_error_handler(request: Request, exc: SimulationError):
    """Simulation errors that escape a route: caller mistakes are 400, bad data 500."""
    status = 400 if isinstance(exc, PreconditionError) else 500
    return JSONResponse(status_code=status, content={"detail": str(exc)})


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": VERSION}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Cricket Match Simulation API",
        "version": VERSION,
        "formats": ["limited", "test"],
        "docs": "/docs" if settings.debug else "disabled",
    }
