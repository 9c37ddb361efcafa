#!/usr/bin/env python3
import logging
import os

import uvicorn

from extract_builder.app import create_app

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create the FastAPI app
app = create_app()


if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload_enabled = os.getenv("EXTRACT_BUILDER_DEV_MODE", "false").lower() == "true"

    print(f"Starting extract builder on {host}:{port}")
    uvicorn.run("main:app", host=host, port=port, reload=reload_enabled)
