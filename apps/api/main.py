"""
Brand Audit Share Service - FastAPI Backend
Main application entry point with health check and API routing.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import redis.asyncio as redis

from config import settings, validate_share_settings
from routers import cleanup, health, share
from services.report_store import build_report_store


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    configure_logging()
    print("🚀 Starting Brand Audit Share API...")
    validate_share_settings()

    store = build_report_store(settings)
    try:
        await store.initialize()
        print(f"🗄️ Report store ready (backend={store.backend_name}).")
    except Exception as e:
        print(f"⚠️ Report store bootstrap skipped: {e}")
    app.state.report_store = store
    app.state.redis = redis.from_url(settings.REDIS_URL, decode_responses=True)

    yield

    # Shutdown
    await app.state.redis.aclose()
    await store.close()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Brand Audit Share API",
    description="Publish brand audit reports under short, expiring share links",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(share.router, tags=["Share"])
app.include_router(cleanup.router, tags=["Maintenance"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Brand Audit Share API",
        "version": "0.1.0",
        "status": "running"
    }
