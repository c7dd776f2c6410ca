#!/usr/bin/env python
"""Script to run the Taskboard API server."""
import os
import sys
from pathlib import Path

# Run from the repo root so relative SQLite paths and .env files resolve
backend_dir = Path(__file__).resolve().parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

import uvicorn

from taskboard.config import HOST, PORT

if __name__ == "__main__":
    uvicorn.run(
        "taskboard.main:app",
        host=HOST,
        port=PORT,
        reload=os.getenv("RELOAD", "").lower() in ("1", "true", "yes", "on"),
    )
