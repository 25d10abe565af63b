import logging

from fastapi import FastAPI

from .api import api_router
from .config import settings

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# --- App Initialization ---
app = FastAPI(
    title="Photo Timeline Clustering API",
    description="Groups photo collections into timeline events and applies manual overrides",
    version="1.0.0",
)

# Include API routes
app.include_router(api_router)


# --- API Endpoints ---
@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Photo Timeline Clustering API", "version": "1.0.0"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
