"""API module."""

from fastapi import APIRouter

from .endpoints import completions, core

router = APIRouter()

# Include endpoint routers
router.include_router(completions.router, prefix="/v1", tags=["completions"])
router.include_router(core.router, tags=["status"])
