"""
Lending Pipeline API - Main Application.

FastAPI application with CORS enabled for the dashboard frontend.

The Supabase client and the automation webhook forwarder are created once per
process and stored on `app.state`. Pass them to `create_app` to run against a
different backend (tests, scripts).
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.errors import register_exception_handlers
from api.settings import Settings
from repositories.client import Client, create_supabase_client
from services.automation_webhook import AutomationWebhook

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def create_app(
    db: Optional[Client] = None,
    webhook: Optional[AutomationWebhook] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "db", None) is None:
            app.state.db = create_supabase_client(settings.supabase_url, settings.supabase_key)
        if not app.state.webhook.enabled:
            logger.info("AUTOMATION_WEBHOOK_URL not set; event forwarding disabled")
        yield

    app = FastAPI(
        title="Lending Pipeline API",
        description="Prospect pipeline, AI outreach, ARF submissions and commission tracking",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.db = db
    app.state.webhook = webhook or AutomationWebhook(
        settings.automation_webhook_url,
        timeout=settings.automation_webhook_timeout,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Health check endpoint.

        Returns the API status and version.
        """
        return {
            "success": True,
            "status": "healthy",
            "version": __version__,
            "service": "lending-pipeline-api",
            "automation_webhook_configured": app.state.webhook.enabled,
        }

    @app.get("/", tags=["Root"])
    def root():
        """
        Root endpoint with API information.
        """
        return {
            "success": True,
            "message": "Lending Pipeline API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    from api.routers import analytics, discovery, prospects, records, webhooks

    app.include_router(prospects.router, tags=["Prospects"])
    app.include_router(webhooks.router, tags=["Webhooks"])
    app.include_router(discovery.router, tags=["Discovery"])
    app.include_router(records.router, tags=["Records"])
    app.include_router(analytics.router, tags=["Analytics"])

    return app


app = create_app()
