#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

Uses the DATABASE_URL from .env (a local SQLite file by default). Apply the
schema first with ``alembic upgrade head``.
"""
import os
from pathlib import Path
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("ENVIRONMENT", "development")

import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print(f"Starting DriveBook API at http://localhost:{port} (docs at /docs)")

    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
