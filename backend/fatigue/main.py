"""
FastAPI application entry point for the fatigue damage engine.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from fatigue.config import get_settings
from fatigue.db.database import init_db
from fatigue.core.interpolation import InterpolationFactory
from contextlib import asynccontextmanager
import logging

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Fatigue Damage Engine API")

    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    logger.info(
        f"Interpolation methods: {', '.join(InterpolationFactory.list_methods())}"
    )

    yield

    logger.info("Shutting down Fatigue Damage Engine API")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Fatigue damage and remaining life from load time series",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from fatigue.api import analysis, expressions, rainflow  # noqa: E402

app.include_router(
    analysis.router,
    prefix="/api",
    tags=["analysis"]
)
app.include_router(
    expressions.router,
    prefix="/api",
    tags=["expressions"]
)
app.include_router(
    rainflow.router,
    prefix="/api",
    tags=["rainflow"]
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    try:
        from fatigue.db.database import SessionLocal
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()

        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "database": "connected",
            "interpolation_methods": InterpolationFactory.list_methods()
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "error": str(e)
        }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Fatigue Damage Engine API",
        "version": settings.app_version,
        "docs": "/api/docs",
        "endpoints": {
            "analysis": "/api/analysis",
            "expressions": "/api/expressions",
            "rainflow": "/api/rainflow"
        }
    }
