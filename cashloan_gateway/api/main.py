"""FastAPI application factory"""

import uvicorn
from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from cashloan_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from cashloan_gateway.api.v1 import loans, organisation, webhooks
from cashloan_gateway.infrastructure.observability.logging import setup_logging
from cashloan_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Cash Loan Gateway",
        description="Multi-tenant installment loan servicing for cash lenders",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(loans.router, prefix="/v1", tags=["loans"])
    app.include_router(organisation.router, prefix="/v1", tags=["organisation"])
    app.include_router(webhooks.router, prefix="/v1", tags=["webhooks"])

    return app


app = create_app()


def run_server() -> None:
    """Run the API with uvicorn on the configured host and port"""
    uvicorn.run(
        "cashloan_gateway.api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
