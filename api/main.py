"""
Agency Operations API - Main Application.

FastAPI application with CORS enabled for the dashboard and client portal.
Settings are loaded and the service context (Supabase, OpenAI) is built once
at startup; a missing required environment variable aborts startup.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.logging_config import configure_logging
from config.settings import load_settings
from services.context import build_context

__version__ = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    configure_logging(settings.log_level)
    app.state.context = build_context(settings)
    yield


# Create FastAPI application
app = FastAPI(
    title="Agency Operations API",
    description="REST API for leads, proposals, projects, reports and payment webhooks",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# TODO: Restrict origins to the dashboard and portal domains once they are fixed
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "agency-operations-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Agency Operations API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import leads, projects, proposals, reports, stripe_webhook, transcribe

app.include_router(leads.router, prefix="/api", tags=["Leads"])
app.include_router(transcribe.router, prefix="/api", tags=["Meetings"])
app.include_router(proposals.router, prefix="/api", tags=["Proposals"])
app.include_router(projects.router, prefix="/api", tags=["Projects"])
app.include_router(reports.router, prefix="/api", tags=["Reports"])
app.include_router(stripe_webhook.router, prefix="/api", tags=["Payments"])
