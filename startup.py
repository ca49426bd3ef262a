#!/usr/bin/env python3
"""
Startup script for Azure App Service.
Validates settings before handing over to uvicorn.
"""

import logging
import os
import sys
import traceback

import uvicorn

# Add src directory to Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(current_dir, "src")
sys.path.insert(0, src_path)

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("startup")


if __name__ == "__main__":
    try:
        from reviewmedia.core.config import get_settings

        settings = get_settings()
    except ValueError as ve:
        logger.error(f"❌ Configuration validation failed: {ve}")
        logger.error(traceback.format_exc())
        logger.error("  1. SECURITY_SECRET_KEY must be >= 32 characters and set explicitly in production/staging")
        logger.error("  2. AZURE_BLOB_CONNECTION_STRING must start with DefaultEndpointsProtocol=")
        sys.exit(1)

    port = int(os.environ.get("PORT", settings.port))
    host = os.environ.get("HOST", settings.host)
    blob_status = "✅ set" if settings.azure_blob.connection_string else "❌ not set"
    logger.info(f"  APP_ENV: {settings.app_env}")
    logger.info(f"  AZURE_BLOB_CONNECTION_STRING: {blob_status}")
    logger.info(f"  AZURE_BLOB_CONTAINER_NAME: {settings.azure_blob.container_name}")
    logger.info(f"Starting application on {host}:{port}")

    try:
        uvicorn.run(
            "reviewmedia.app:app",
            host=host,
            port=port,
            workers=1,
            log_level=settings.logging.level.lower(),
            access_log=True,
            timeout_keep_alive=75,
            timeout_graceful_shutdown=30,
        )
    except KeyboardInterrupt:
        logger.info("⚠️  Shutting down due to keyboard interrupt")
        sys.exit(0)
