"""Status endpoints for the memory gateway."""

from fastapi import APIRouter

from memory_gateway.core.logging import get_logger
from memory_gateway.domain.models.utils import utc_now

logger = get_logger(__name__)

router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint with application status."""
    return {
        "message": "Memory Gateway API",
        "version": "0.1.0",
        "status": "running",
        "features": [
            "memory_retrieval",
            "document_context",
            "streaming_passthrough",
            "fact_extraction",
        ],
    }


@router.get("/health", operation_id="health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": utc_now().isoformat()}
