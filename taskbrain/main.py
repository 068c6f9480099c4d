"""
HTTP service entry point.

    TASKBRAIN_HOME=/path/to/workspace uvicorn taskbrain.main:create_application --factory
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from . import __version__
from .api import create_router
from .app import build_app

# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("taskbrain")


def create_application(base_path: Optional[Path] = None) -> FastAPI:
    """Build the FastAPI application for one workspace."""
    app_context = build_app(base_path)
    application = FastAPI(
        title="Task Brain",
        description="Task lifecycle and knowledge capture",
        version=__version__,
    )
    application.include_router(create_router(app_context))

    @application.get("/health")
    async def health():
        return {
            "status": "healthy",
            "version": __version__,
            "base_path": str(app_context.layout.base_path),
        }

    logger.info(f"Task Brain {__version__} serving {app_context.layout.base_path}")
    return application


# -----------------------------------------------------------------------------
# Main Entry Point (for development)
# -----------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_application(), host="0.0.0.0", port=8000)
