#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FastAPI Web Server - REST API for vpdf.

Thin orchestration shell: app creation, middleware, error handlers,
router includes, startup/shutdown events.

Usage:
    uvicorn api.main:app --host 0.0.0.0 --port 8000
"""

from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from config.logging_config import get_logger, setup_logging
from config.settings import settings
from core.exceptions import (
    EmptyContent,
    ExtractionError,
    IoError,
    RenderTargetMissing,
    RenderWriteError,
    UnsupportedFormat,
    VpdfError,
)

from api.deps import store
from api.models import ErrorResponse
from api.rate_limiter import limiter, rate_limit_exceeded_handler
from api.routes.health import router as health_router
from api.routes.sessions import router as sessions_router

logger = get_logger(__name__)

# HTTP status per domain error
ERROR_STATUS = {
    UnsupportedFormat: 415,
    IoError: 400,
    ExtractionError: 422,
    EmptyContent: 422,
    RenderTargetMissing: 500,
    RenderWriteError: 500,
}

# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="vpdf API",
    description="Type or import text, format it, and export it as a paginated PDF",
    version="1.0.0",
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(VpdfError)
async def vpdf_error_handler(request: Request, exc: VpdfError):
    status_code = 500
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=exc.message, error=exc.kind, severity=exc.severity).model_dump(),
    )


# CORS middleware, origins from settings (env var) or dev defaults
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


# Security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


app.add_middleware(SecurityHeadersMiddleware)

# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router)
app.include_router(sessions_router)

# =============================================================================
# Startup / Shutdown Events
# =============================================================================


@app.on_event("startup")
async def startup_logging():
    """Configure logging once the server starts."""
    setup_logging(settings.log_level, logs_dir=settings.logs_dir, json_format=settings.log_json)
    logger.info(f"vpdf API started (output: {settings.output_dir})")


@app.on_event("shutdown")
async def shutdown_sessions():
    """Close all sessions, saving any PDF still waiting for its download delay."""
    await store.close_all()
    logger.info("All sessions closed")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    logger.info("Starting vpdf API Server...")
    logger.info("API Documentation: http://localhost:8000/docs")

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
