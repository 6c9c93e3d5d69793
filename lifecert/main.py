"""FastAPI application entry point."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lifecert.api import router
from lifecert.config import settings
from lifecert.workflow import workflow_registry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

# Set workflow module to DEBUG for narration and draw logs
logging.getLogger("lifecert.workflow").setLevel(logging.DEBUG)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    yield

    # Shutdown: drop pending narration of every workflow
    workflow_registry.shutdown()


app = FastAPI(
    title="Life Certificate Verification API",
    description="NAPSA verification manager agent: annual KYC and Life Certificate workflow",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(router)


@app.get("/", tags=["health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "message": "Life Certificate Verification API is running",
        "version": "0.1.0",
    }


@app.get("/health", tags=["health"])
async def health():
    """Detailed health check endpoint."""
    return {
        "status": "healthy",
        "service": "lifecert",
        "version": "0.1.0",
        "workflows": len(workflow_registry.list_workflows()),
    }
