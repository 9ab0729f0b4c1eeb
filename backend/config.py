"""
Service configuration, read once from the environment (and an optional .env).
"""

import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./clients.db")

# ── Identity service ─────────────────────────────────────────────────────────
IDENTITY_API_BASE_URL: str = os.getenv("IDENTITY_API_BASE_URL", "https://api.apoint.co.il")
BOOTSTRAP_TIMEOUT_SECONDS: float = float(os.getenv("BOOTSTRAP_TIMEOUT_SECONDS", "10"))
# Overall budget for the login + auth pair
BOOTSTRAP_DEADLINE_SECONDS: float = float(os.getenv("BOOTSTRAP_DEADLINE_SECONDS", "20"))

# ── HTTP surface ─────────────────────────────────────────────────────────────
MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "100"))
CORS_ORIGINS: list[str] = [
    o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
]

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

VERSION = "1.0.0"
