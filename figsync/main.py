"""
Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from figsync import __version__
from figsync.api import router as api_router
from figsync.core.config import get_settings
from figsync.core.database import Base, check_database, engine, get_db
from figsync.core.logging import get_logger, setup_logging
from figsync.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

settings = get_settings()

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(
        f"Starting {settings.APP_NAME}",
        extra={
            "extra_fields": {
                "environment": settings.ENVIRONMENT,
                "debug": settings.DEBUG,
            }
        },
    )

    # Import models so their tables are registered on Base.metadata
    import figsync.models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables verified/created")
    except SQLAlchemyError as e:
        logger.error(f"Failed to initialize database: {e}")

    if settings.SENTRY_DSN:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=0.1 if settings.ENVIRONMENT == "production" else 1.0,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                SqlalchemyIntegration(),
            ],
        )
        logger.info("Sentry initialized successfully")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")


app = FastAPI(
    title=settings.APP_NAME,
    description="Collection import reconciliation and catalog lookup dispatch",
    version=__version__,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": __version__,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/health/ready")
def readiness_check(db: Session = Depends(get_db)):
    """
    Readiness check endpoint.

    Verifies the application can handle requests (database connected).
    """
    db_status = "connected" if check_database(db) else "disconnected"

    status = "ready" if db_status == "connected" else "not_ready"

    return {
        "status": status,
        "checks": {
            "database": db_status,
        },
    }


app.include_router(api_router, prefix=settings.API_V1_PREFIX)
