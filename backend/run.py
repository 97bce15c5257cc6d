"""
Entry point for the fatigue damage engine API server.
"""
import logging

import uvicorn

from fatigue.config import get_settings


def main():
    """Run the FastAPI application."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    uvicorn.run(
        "fatigue.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
