"""
Civic Complaint Tracker - Main FastAPI Application
"""
from fastapi import FastAPI
import logging
import os
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from app.core.config import settings
from app.core.database import Base, engine
from app.api.v1.api import api_router
from app.services.sla_scheduler import sla_scheduler

# Import all models to ensure they're registered
from app.models import complaint, user, notification

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="Complaint routing, SLA tracking and escalation for municipal services",
    version=settings.VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)


@app.on_event("startup")
async def startup_event():
    """Create database tables and schedule the SLA job"""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables checked/created successfully")
    except Exception as e:
        logger.error(f"Could not create tables automatically: {e}")
        logger.error("Run: python -m scripts.init_db")

    if settings.SLA_SCHEDULER_ENABLED:
        # Avoid a second scheduler in the reloader's parent process
        run_main = os.environ.get("RUN_MAIN")
        if not settings.DEBUG or run_main == "true":
            sla_scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    await sla_scheduler.stop()


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Trusted hosts
app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.ALLOWED_HOSTS,
)

# Include API routes
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {
        "message": f"{settings.PROJECT_NAME} API",
        "version": settings.VERSION,
        "status": "operational"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "sla_scheduler": sla_scheduler.running}
