# backend/config.py

import os

from dotenv import load_dotenv

load_dotenv()

# ─── Database ──────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./docuchat.db")

# ─── Auth ──────────────────────────────────────────────────────────────────────
JWT_SECRET = os.getenv("JWT_SECRET", "change_this_to_a_random_string")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))

# ─── AI gateway (OpenAI-compatible chat completions) ───────────────────────────
AI_API_KEY = os.getenv("AI_API_KEY")
AI_GATEWAY_URL = os.getenv("AI_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1")
AI_MODEL = os.getenv("AI_MODEL", "google/gemini-2.5-flash")
# Unset means no timeout beyond the transport's own
COMPLETION_TIMEOUT = float(os.getenv("COMPLETION_TIMEOUT")) if os.getenv("COMPLETION_TIMEOUT") else None

# ─── Rate limiting ─────────────────────────────────────────────────────────────
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", 100))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", 3600))

# ─── HTTP ──────────────────────────────────────────────────────────────────────
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if o.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
