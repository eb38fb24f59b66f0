# src/threadline/main.py
"""Main entry point for the Threadline application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from threadline.api.v1 import auth_router, feed_router, posts_router, users_router
from threadline.core.settings import settings
from threadline.services.errors import (
    AuthenticationRequired,
    MalformedDataError,
    NotFoundError,
    PermissionDenied,
    RemoteFailure,
    ThreadlineError,
    ValidationFailure,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Threaded social feed API",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(feed_router, prefix="/api/v1")
app.include_router(posts_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")

# Most specific first; the first matching class wins.
_STATUS_BY_ERROR: tuple[tuple[type[ThreadlineError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthenticationRequired, status.HTTP_401_UNAUTHORIZED),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (ValidationFailure, status.HTTP_400_BAD_REQUEST),
    (RemoteFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
    (MalformedDataError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


@app.exception_handler(ThreadlineError)
async def threadline_error_handler(request: Request, exc: ThreadlineError) -> JSONResponse:
    """Translate domain errors into JSON responses."""
    status_code = next(
        (code for error_type, code in _STATUS_BY_ERROR if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationRequired) else None
    return JSONResponse(status_code=status_code, content={"detail": str(exc)}, headers=headers)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "description": "Threaded social feed API",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("threadline.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
