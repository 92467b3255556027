"""
FastAPI application factory.

Responsibilities
----------------
* Instantiate the FastAPI app.
* Register CORS middleware.
* Mount the feature routers (auth, admin).
* Expose a /health endpoint for container liveness checks.

Production note
---------------
The browser-side lockout in ``client/lockout.py`` is a UX aid only.  Any
internet-facing deployment must put a server-side rate limiter (reverse
proxy or gateway) in front of POST /auth/login.
"""

import time

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from auth.router import router as auth_router
from auth.schemas import LoginFailure
from admin.router import router as admin_router
from core.config import settings
from core.logger import logger

app = FastAPI(title="Gym Account Authentication", version="1.0.0")

INVALID_LOGIN_REQUEST_MESSAGE = "Requisição de login inválida. Verifique os campos enviados."

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)


# ---------------------------------------------------------------------------
# Request-logging middleware
# ---------------------------------------------------------------------------
# Logs every inbound request: method, path, client IP, status, latency.
# Request bodies (passwords, license keys) are NOT echoed – only the URL and
# metadata are recorded.


class _RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, client IP, response status and latency (ms)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        client_ip = request.client.host if request.client else "unknown"

        logger.info(
            "%s %s | client=%s status=%d latency=%.1fms",
            request.method,
            request.url.path,
            client_ip,
            response.status_code,
            elapsed_ms,
        )
        return response


app.add_middleware(_RequestLogMiddleware)

# ---------------------------------------------------------------------------
# Validation errors
# ---------------------------------------------------------------------------
# POST /auth/login answers every failure with {success: false, error}; a
# malformed body (null field, unknown panelType) gets the same shape.


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    if request.url.path != "/auth/login":
        return await request_validation_exception_handler(request, exc)
    logger.info("Rejected malformed login request: %s", [error.get("loc") for error in exc.errors()])
    return JSONResponse(
        status_code=422,
        content=LoginFailure(error=INVALID_LOGIN_REQUEST_MESSAGE).model_dump(exclude_none=True),
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(auth_router)
app.include_router(admin_router)

# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@app.on_event("startup")
async def _on_startup():
    logger.info("Authentication service starting up")


@app.on_event("shutdown")
async def _on_shutdown():
    logger.info("Authentication service shutting down")


@app.get("/health")
def health():
    return {"status": "ok"}
