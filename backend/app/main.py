"""StayLedger CRM: FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.auth import router as auth_router
from app.api.v1.bookings import router as bookings_router
from app.api.v1.payments import router as payments_router
from app.api.v1.properties import router as properties_router
from app.api.v1.reports import router as reports_router
from app.auth.rate_limit import build_login_rate_limiter
from app.config import settings
from app.errors import DomainError

# Configure root logger so all app.* loggers output to stderr (captured by Docker).
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    yield
    # Shutdown: dispose engine connections
    from app.database import engine

    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Property-management CRM: bookings, payments and owner financial reports.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Set at import time so ASGI transports that skip lifespan still get a limiter.
app.state.login_rate_limiter = build_login_rate_limiter()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Render booking, ledger and lookup errors as ``{"detail", "code", ...}``."""
    if exc.status_code >= 409:
        logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
    headers = None
    if "retry_after" in exc.context:
        headers = {"Retry-After": str(exc.context["retry_after"])}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


# Routers
app.include_router(auth_router)
app.include_router(properties_router)
app.include_router(bookings_router)
app.include_router(payments_router)
app.include_router(reports_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
