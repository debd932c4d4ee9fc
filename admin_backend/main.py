"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from admin_backend.core.config import settings
from admin_backend.core.middleware import setup_middleware
from admin_backend.core.exceptions import AdminConsoleError

from admin_backend.api.admin import router as admin_router
from admin_backend.api.audit import router as audit_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("admin_console")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s", settings.APP_NAME)
    try:
        from admin_backend.db.session import init_db
        init_db()
        logger.info("Audit store ready")
    except Exception as e:
        # The local fallback keeps audit entries while the store is down.
        logger.warning("Audit store not available: %s", e)

    yield

    from admin_backend.services.audit_service import audit_trail
    audit_trail.fallback.clear()
    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title="Marketplace Admin Console API",
    description="Authorization, confirmation and audit pipeline for admin actions",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware
setup_middleware(app)


@app.exception_handler(AdminConsoleError)
async def admin_exception_handler(request: Request, exc: AdminConsoleError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
    )


# Register routers
app.include_router(admin_router, prefix="/api")
app.include_router(audit_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Quick health check endpoint."""
    return {"status": "ok"}
