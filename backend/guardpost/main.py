"""GuardPost - Security Operations Analyst API"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from guardpost.core.config import get_settings
from guardpost.core.logging import configure_logging, logger
from guardpost.routers import ai, security
from guardpost.services.query_orchestrator import security_query_orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.log_json)
    logger.info(
        "GuardPost API starting",
        version="0.1.0",
        app_mode=settings.normalized_app_mode(),
        **security_query_orchestrator.get_runtime_info(),
    )
    yield
    logger.info("GuardPost API shutting down")


app = FastAPI(
    title="GuardPost API",
    description="Natural-language analyst over patrol units, personnel, cameras and security events",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ai.router)
app.include_router(security.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "GuardPost API",
        "version": "0.1.0",
        "description": "Security Operations Analyst",
        "endpoints": {
            "ai": "/ai",
            "security": "/security",
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
