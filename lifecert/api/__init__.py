"""API module for all endpoints."""

from fastapi import APIRouter

from lifecert.api.verification import router as verification_router

# Create main router and include all sub-routers
router = APIRouter()
router.include_router(verification_router)

__all__ = ["router"]
