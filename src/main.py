"""
Main entry point for hybrid-search-service.

Creates the FastAPI application instance for uvicorn.
"""

import uvicorn

from src.api.app import create_app
from src.core.config import get_settings
from src.core.logging import setup_structured_logging

settings = get_settings()
setup_structured_logging(log_file_path=settings.hybrid_search_log_file)

# Create application instance
app = create_app(settings=settings)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=settings.hybrid_search_port)  # noqa: S104
