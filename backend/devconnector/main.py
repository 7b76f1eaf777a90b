"""
DevConnector API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from devconnector.config import get_settings
from devconnector.database.connection import close_db, init_db
from devconnector.utils.logger import get_logger, setup_logging

# Import models so Base.metadata has all tables before init_db()
import devconnector.models  # noqa: F401

from devconnector.api.routes import auth, profile, users
from devconnector.api.middleware.error_handler import register_exception_handlers
from devconnector.api.registry import ensure_unique_routes, include_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: init DB. Shutdown: close pool."""
    setup_logging()
    try:
        await init_db()
        logger.info("Application started")
    except Exception as e:
        logger.warning(
            "Database connection failed at startup. Check DATABASE_URL. Error: %s",
            e,
        )
    yield
    await close_db()
    logger.info("Application shutdown")


def create_application() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="DevConnector API",
        description="Developer profiles: accounts, profiles and work experience",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    prefix = settings.api_prefix
    include_router(app, users.router, prefix=prefix + "/users", tags=["users"])
    include_router(app, auth.router, prefix=prefix + "/auth", tags=["auth"])
    include_router(app, profile.router, prefix=prefix + "/profile", tags=["profile"])

    @app.get("/")
    async def root():
        """Redirect to API docs."""
        return RedirectResponse(url="/docs")

    @app.get("/health")
    async def health():
        """Health check for load balancers and monitoring."""
        return {"status": "ok"}

    # One handler per (method, path)
    ensure_unique_routes(app)
    return app


app = create_application()
