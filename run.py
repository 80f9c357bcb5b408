"""Entry point for the eLibrary API server.

Starts the FastAPI application with Uvicorn.  Host and port are read
from the ``HOST`` and ``PORT`` environment variables (defaults
``0.0.0.0`` and ``8080``); everything else comes from
:class:`elibrary_api.app.core.config.Settings`.

Usage:
    python run.py
"""
import asyncio
import logging
import os

from uvicorn import Config, Server

from elibrary_api.app.core.config import Settings
from elibrary_api.app.main import create_app


async def run_api() -> None:
    """Serve the API until interrupted."""
    settings = Settings.from_env()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    config = Config(
        app=create_app(settings),
        host=host,
        port=port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(run_api())
    except (KeyboardInterrupt, SystemExit):
        logging.getLogger(__name__).info("Server stopped")
