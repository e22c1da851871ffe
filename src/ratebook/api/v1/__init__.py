"""API v1 router aggregation."""

from fastapi import APIRouter

from .rating import router as rating_router
from .rate_programs import router as rate_programs_router

# Create main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(rating_router, prefix="/rating", tags=["rating"])
router.include_router(rate_programs_router, prefix="/rate-programs", tags=["rate-programs"])


__all__ = ["router"]
