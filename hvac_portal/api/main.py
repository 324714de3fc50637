"""
HVAC Portal API
===============

FastAPI application for the portal's authentication, session and
employee administration endpoints.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .. import __version__
from ..config import PortalConfig, config as default_config
from ..core.auth import AuthServices, bootstrap_admin
from ..core.database import DatabaseBackend, apply_schema, close_database, get_database
from ..core.observability import configure_logging, init_tracing
from .shared.middleware import AuthorizationMiddleware, TraceMiddleware, register_error_handlers
from .shared.routers import auth_router, employees_router, health_router
from .shared.security import SecurityMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    cfg: PortalConfig = app.state.config
    services: AuthServices = app.state.auth

    configure_logging(level=cfg.LOG_LEVEL, structured=cfg.LOG_STRUCTURED)
    for issue in cfg.validate():
        logger.warning(f"Config: {issue}")

    if cfg.OTEL_EXPORTER_OTLP_ENDPOINT:
        init_tracing(service_version=__version__, otlp_endpoint=cfg.OTEL_EXPORTER_OTLP_ENDPOINT)

    # Startup
    if app.state.owns_database:
        db = await get_database()
        # PostgreSQL schemas are managed by db/migrate.py
        if db.backend == DatabaseBackend.SQLITE:
            await apply_schema(db)

    if cfg.ADMIN_EMAIL and cfg.ADMIN_PASSWORD:
        await bootstrap_admin(services.employees, cfg.ADMIN_EMAIL, cfg.ADMIN_PASSWORD, cfg.ADMIN_NAME)

    yield

    # Shutdown
    if app.state.owns_database:
        await close_database()


def create_app(
    services: Optional[AuthServices] = None,
    config: Optional[PortalConfig] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        services: Auth services to use; SQL-backed services on the global
            database when omitted
        config: Configuration; the process-wide config when omitted

    Returns:
        Configured FastAPI app
    """
    cfg = config or (services.config if services else default_config)

    app = FastAPI(
        title="HVAC Portal API",
        description="Authentication, sessions and employee administration",
        version=__version__,
        lifespan=lifespan
    )

    app.state.config = cfg
    app.state.owns_database = services is None
    app.state.auth = services or AuthServices.sql(cfg=cfg)

    register_error_handlers(app)

    # Added innermost first: security headers wrap tracing, which wraps authorization
    app.add_middleware(AuthorizationMiddleware)
    app.add_middleware(TraceMiddleware)
    app.add_middleware(SecurityMiddleware)

    app.include_router(auth_router)
    app.include_router(employees_router)
    app.include_router(health_router)

    return app


app = create_app()


def main():
    import uvicorn

    uvicorn.run(
        "hvac_portal.api.main:app",
        host=default_config.API_HOST,
        port=default_config.API_PORT,
    )


if __name__ == "__main__":
    main()
