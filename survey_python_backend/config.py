"""Shared environment configuration constants for the survey backend."""
import os
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent

# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./survey.db")

# --- Static frontend ---
STATIC_DIR = Path(os.getenv("STATIC_DIR", str(REPO_ROOT / "public")))
LANDING_DOCUMENT = "index.html"

# --- HTTP ---
CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
    if origin.strip()
]
PORT = int(os.getenv("PORT", "3000"))

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

HEALTH_MESSAGE = "Survey server is running."
