"""Lead capture FastAPI application."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leadsheets.api.health import router as health_router
from leadsheets.api.leads import router as leads_router
from leadsheets.api.oauth import router as oauth_router
from leadsheets.api.tenants import router as tenants_router
from leadsheets.auth.middleware import PUBLIC_KEY_HEADER_NAME
from leadsheets.config import Settings, settings as default_settings
from leadsheets.database import Database
from leadsheets.errors import LeadSheetsError
from leadsheets.integrations.google_oauth import GoogleOAuthClient
from leadsheets.integrations.google_sheets import GoogleSheetsClient

logging.basicConfig(
    level=default_settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _log_env_check(settings: Settings) -> None:
    logger.info(
        "ENV CHECK hasDatabaseUrl=%s hasGoogleId=%s hasGoogleSecret=%s hasRedirect=%s corsOrigins=%s",
        bool(settings.database_url),
        bool(settings.google_client_id),
        bool(settings.google_client_secret),
        bool(settings.google_redirect_uri),
        settings.cors_origin_list,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    database: Database = app.state.database
    if app.state.settings.auto_create_schema:
        await database.create_all()
        logger.info("Schema ready")
    yield
    await database.dispose()


async def lead_sheets_error_handler(request: Request, exc: LeadSheetsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    oauth_client: GoogleOAuthClient | None = None,
    sheets_client: GoogleSheetsClient | None = None,
) -> FastAPI:
    """Build the app; collaborators are injectable so tests can swap them."""
    settings = settings or default_settings
    _log_env_check(settings)
    # include_granted_scopes may hand back more scopes than requested
    os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")

    app = FastAPI(
        title="Lead Sheets",
        description="Collects widget leads and appends them to each tenant's Google Sheet",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database or Database.from_settings(settings)
    app.state.oauth_client = oauth_client or GoogleOAuthClient.from_settings(settings)
    app.state.sheets_client = sheets_client or GoogleSheetsClient()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", PUBLIC_KEY_HEADER_NAME],
    )
    app.add_exception_handler(LeadSheetsError, lead_sheets_error_handler)

    app.include_router(health_router, prefix="/api", tags=["Health"])
    app.include_router(tenants_router, prefix="/api", tags=["Tenants"])
    app.include_router(oauth_router, prefix="/api/oauth", tags=["OAuth"])
    app.include_router(leads_router, prefix="/api", tags=["Leads"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"service": "leadsheets", "version": "0.1.0", "docs": "/docs"}

    return app


app = create_app()
