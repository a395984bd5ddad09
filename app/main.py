"""Practice Ops API — FastAPI application factory."""


import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.middleware.audit import AuditMiddleware
from app.schemas.common import HealthResponse

# Inbound webhooks (/api/webhooks/*)
from app.routers.webhooks import router as webhooks_router

# v1 routers
from app.routers.v1.clients import router as clients_v1_router
from app.routers.v1.compliance import router as compliance_v1_router
from app.routers.v1.deadlines import router as deadlines_v1_router
from app.routers.v1.document_collection import router as document_collection_v1_router
from app.routers.v1.documents import router as documents_v1_router
from app.routers.v1.email import router as email_v1_router
from app.routers.v1.invitations import router as invitations_v1_router
from app.routers.v1.tracking import router as tracking_v1_router
from app.routers.v1.voice import router as voice_v1_router

_V1_ROUTERS = (
    clients_v1_router,
    document_collection_v1_router,
    documents_v1_router,
    tracking_v1_router,
    deadlines_v1_router,
    compliance_v1_router,
    voice_v1_router,
    invitations_v1_router,
    email_v1_router,
)


def _configure_logging() -> None:
    """Set up structured logging for the application."""
    level = logging.DEBUG if settings.app_env == "development" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("pdfminer").setLevel(logging.WARNING)


def create_app() -> FastAPI:
    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url="/docs" if settings.app_env == "development" else None,
        redoc_url="/redoc" if settings.app_env == "development" else None,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # --- Audit middleware ---
    if settings.audit_enabled:
        app.add_middleware(AuditMiddleware)

    # --- Global exception handlers ---
    register_exception_handlers(app)

    # --- Webhooks (/api/webhooks/*) ---
    app.include_router(webhooks_router)

    # --- v1 API routes (/api/v1/*) ---
    for router in _V1_ROUTERS:
        app.include_router(router, prefix="/api/v1")

    # --- Health check ---
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health():
        return HealthResponse(app=settings.app_name, env=settings.app_env)

    return app


app = create_app()
