"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from kot_ledger.api.errors import register_exception_handlers
from kot_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from kot_ledger.api.v1 import advance, audit, bills, credit, expenses, splits
from kot_ledger.infrastructure.database.models import Base
from kot_ledger.infrastructure.database.session import engine
from kot_ledger.infrastructure.observability.logging import setup_logging
from kot_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Embedded SQLite starts empty; server databases are expected to be provisioned
    Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="KOT Ledger",
        description="Split payments, customer credit and advance, and reconciliation",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(splits.router, prefix="/v1", tags=["splits"])
    app.include_router(bills.router, prefix="/v1", tags=["bills"])
    app.include_router(credit.router, prefix="/v1", tags=["credit"])
    app.include_router(advance.router, prefix="/v1", tags=["advance"])
    app.include_router(expenses.router, prefix="/v1", tags=["expenses"])
    app.include_router(audit.router, prefix="/v1", tags=["audit"])

    return app


app = create_app()
