#!/usr/bin/env python3
"""
FastAPI webapp module for running with uvicorn.

Usage:
    uvicorn run_webapp_local:app --host 0.0.0.0 --port 8080
    python run_webapp_local.py

Environment Variables:
    DATABASE_URL: Store URL (default: sqlite:///./social.db for local runs)
    RATE_LIMIT_ENABLED / RATE_LIMIT_BACKEND: Admission control settings
"""

import os
import sys
from pathlib import Path

import uvicorn

# Add social_core to path
sys.path.insert(0, str(Path(__file__).parent / "social_core"))

os.environ.setdefault("DATABASE_URL", f"sqlite:///{Path(__file__).parent / 'social.db'}")

from db.schema import ensure_schema  # noqa: E402
from utils.logger import get_logger  # noqa: E402
from webapp.api import create_social_api  # noqa: E402

logger = get_logger(__name__)

ensure_schema()

# Create FastAPI app instance (exposed for uvicorn)
app = create_social_api()

logger.info("Social Interaction API module loaded")
logger.info("  API docs: http://localhost:8080/api/docs")


if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8080")))
