"""
Proposal Review API - collaborative question/answer review for RFP proposals
"""
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from proposal_review import __version__
from proposal_review.database import is_database_configured
from proposal_review.security import setup_security

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

from proposal_review.routers import (  # noqa: E402
    answers,
    collaborations,
    comments,
    health,
    notifications,
    proposals,
    suggestions,
)


# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown"""
    if is_database_configured():
        # Schema is owned by Alembic: run `alembic upgrade head` from backend/
        logger.info("Proposal Review API started (SQL record store)")
    else:
        logger.info("Proposal Review API started (in-memory record store)")
    yield
    logger.info("Proposal Review API shutdown complete")


app = FastAPI(
    title="Proposal Review API",
    description="Role-scoped collaboration, answer review, comments and suggestions",
    version=__version__,
    lifespan=lifespan,
)

# =============================================================================
# CORS Configuration
# =============================================================================
# Production accepts HTTPS origins only; development allows localhost.
ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
DEFAULT_PRODUCTION_ORIGIN = "https://proposals.example.com"

if ENVIRONMENT == "production":
    ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS", DEFAULT_PRODUCTION_ORIGIN).split(",")
    ALLOWED_ORIGINS = []
    for origin in ALLOWED_ORIGINS_RAW:
        origin = origin.strip()
        if not origin:
            continue
        if not origin.startswith("https://"):
            logger.warning("[CORS] Rejecting non-HTTPS origin in production: %s", origin)
            continue
        if "localhost" in origin or "127.0.0.1" in origin:
            logger.warning("[CORS] Rejecting localhost origin in production: %s", origin)
            continue
        ALLOWED_ORIGINS.append(origin)

    if not ALLOWED_ORIGINS:
        ALLOWED_ORIGINS = [DEFAULT_PRODUCTION_ORIGIN]
        logger.warning("[CORS] No valid origins configured, using default production origin")
else:
    default_origins = "http://localhost:3000,http://localhost:5173"
    ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS", default_origins).split(",")
    ALLOWED_ORIGINS = [origin.strip() for origin in ALLOWED_ORIGINS_RAW if origin.strip()]

if not ALLOWED_ORIGINS:
    raise ValueError("CORS configuration error: No valid allowed origins configured")

logger.info("[CORS] Environment: %s, allowed origins: %s", ENVIRONMENT, ALLOWED_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
)

# Rate limiting, security headers, request size limits and error handlers
setup_security(app, ALLOWED_ORIGINS)

# =============================================================================
# Routers
# =============================================================================
app.include_router(health.router)
app.include_router(proposals.router)
app.include_router(collaborations.router)
app.include_router(answers.router)
app.include_router(comments.router)
app.include_router(suggestions.router)
app.include_router(notifications.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
