#!/usr/bin/env python3
"""
Run the tracking service with auto-reload
"""

import os

import uvicorn

if __name__ == "__main__":
    # Set default environment variables if not set
    os.environ.setdefault("ENVIRONMENT", "development")
    os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./data/tracker.db")

    port = int(os.getenv("PORT", "8080"))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True, log_level="info")
