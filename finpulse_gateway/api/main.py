"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from finpulse_gateway.api.dependencies import build_orchestrator
from finpulse_gateway.api.middleware import MetricsMiddleware, RequestIDMiddleware
from finpulse_gateway.api.v1 import assessments, history, sales, sessions
from finpulse_gateway.config import settings
from finpulse_gateway.infrastructure.observability.logging import setup_logging
from finpulse_gateway.services.orchestrator import AssessmentOrchestrator

# Setup structured logging
setup_logging(settings.log_level)


def create_app(orchestrator: AssessmentOrchestrator | None = None) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="FinPulse Assessment Gateway",
        description="SME financial assessment pipeline with bounded per-user history",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.orchestrator = orchestrator or build_orchestrator()

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
    app.include_router(assessments.router, prefix="/v1", tags=["assessments"])
    app.include_router(history.router, prefix="/v1", tags=["history"])
    app.include_router(sales.router, prefix="/v1", tags=["sales"])
    app.include_router(sessions.router, prefix="/v1", tags=["sessions"])

    return app


app = create_app()
