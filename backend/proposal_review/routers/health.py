"""Health-check router."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from proposal_review import __version__
from proposal_review.database import is_database_configured

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/")
async def root():
    """Health check"""
    return {"status": "ok", "message": "Proposal review API is running"}


@router.get("/api/v1/health")
async def health_check():
    """Liveness plus which record store backs the service."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "store": "database" if is_database_configured() else "in_memory",
        },
    }
