"""FastAPI application for the liquidity pipeline."""

import logging
import os

import uvicorn
from fastapi import FastAPI

from lpflow import __version__
from lpflow.api.endpoints import router
from lpflow.log import configure_logging

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("LPFLOW_HOST", "0.0.0.0")
PORT = int(os.environ.get("LPFLOW_PORT", "8000"))
DEBUG = os.environ.get("LPFLOW_DEBUG", "false").lower() in ("true", "1", "yes")

app = FastAPI(
    title="lpflow",
    description="Concentrated liquidity deposit calculation and transaction planning",
    version=__version__,
)

app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Run the API server.

    Configuration via environment variables:
    - LPFLOW_HOST: Host to bind to (default: 0.0.0.0)
    - LPFLOW_PORT: Port to bind to (default: 8000)
    - LPFLOW_DEBUG: Enable debug logging and reload mode (default: false)
    """
    configure_logging(logging.DEBUG if DEBUG else logging.INFO)
    uvicorn.run(
        "lpflow.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
