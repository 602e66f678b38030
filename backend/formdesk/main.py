import logging
import threading
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from formdesk.core.config import settings
from formdesk.core.logging import configure_logging
from formdesk.api import fields as fields_api
from formdesk.api import forms as forms_api
from formdesk.api import notifications as notifications_api
from formdesk.api import public_forms as public_forms_api
from formdesk.api import webhooks as webhooks_api

logger = logging.getLogger(__name__)


def init_database():
    """Create any missing tables."""
    from formdesk.core.database import engine, Base
    import formdesk.models  # noqa: F401  registers every table on Base

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run database init on startup + start the optional notification poller."""
    configure_logging()
    init_database()

    stop_event = threading.Event()
    if settings.NOTIFICATION_POLL_INTERVAL > 0:
        from formdesk.tasks.poller import start_poller
        start_poller(settings.NOTIFICATION_POLL_INTERVAL, stop_event)

    yield

    stop_event.set()


# Disable API docs in production
docs_url = "/docs" if settings.ENVIRONMENT != "production" else None
redoc_url = "/redoc" if settings.ENVIRONMENT != "production" else None

app = FastAPI(
    title=settings.APP_NAME,
    description="FormDesk - form responses and client notifications",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=docs_url,
    redoc_url=redoc_url,
)


# Global exception handler - always return JSON (never plain text)
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error("Unhandled exception: %s", exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal error: {str(exc)}"},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )


# CORS - the public form is embedded on client sites
allowed_origins = ["*"]
allow_credentials = False
if settings.FRONTEND_URL:
    allowed_origins = ["http://localhost:3000", settings.FRONTEND_URL]
    allow_credentials = True

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "formdesk-api", "version": "1.0.0"}


@app.get("/")
def root():
    return {"message": "FormDesk API", "version": "1.0.0", "docs": docs_url}


# Include routers
app.include_router(public_forms_api.router)
app.include_router(fields_api.router)
app.include_router(forms_api.router)
app.include_router(webhooks_api.router)
app.include_router(notifications_api.router)
