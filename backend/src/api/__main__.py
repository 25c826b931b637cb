"""Entry point for running the bookmark sync API."""

import logging
import os

import uvicorn

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    host = os.getenv("BOOKMARK_API_HOST", "0.0.0.0")
    # BOOKMARK_API_PORT for local dev, PORT for PaaS platforms
    port = int(os.getenv("BOOKMARK_API_PORT") or os.getenv("PORT") or "8000")

    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        log_level="info",
    )
