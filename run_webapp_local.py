#!/usr/bin/env python3
"""
FastAPI webapp module for running with uvicorn.

Usage:
    uvicorn run_webapp_local:app --host 0.0.0.0 --port 8080
    python run_webapp_local.py

Environment Variables:
    DATABASE_URL: SQLAlchemy URL (default: sqlite:///content_platform.db)
    CONTENT_UPLOAD_DIR: Artifact root directory
    APP_BASE_URL: Public base URL used for links and the base tag
    ANTHROPIC_API_KEY: Annotation service key
"""

import os

import uvicorn

from content_platform.config import load_config
from content_platform.utils.logger import get_logger
from content_platform.webapp.api import create_app

logger = get_logger(__name__)

config = load_config()

# Create FastAPI app instance (exposed for uvicorn)
app = create_app(config)

logger.info("Content platform API module loaded")
logger.info("  Upload directory: %s", config.content.upload_dir)
logger.info("  API docs: %s/api/docs", config.app.base_url)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8080")))
