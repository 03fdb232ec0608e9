"""Runtime configuration.

Everything is read from environment variables (a local ``.env`` file is
loaded first). Defaults are meant for development against the M-Pesa sandbox.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

# --- Database ----------------------------------------------------------------
DATABASE_URL: str | None = os.getenv("DATABASE_URL")
DB_CONNECT_MAX_RETRIES: int = int(os.getenv("DB_CONNECT_MAX_RETRIES", "30"))
DB_CONNECT_RETRY_DELAY: float = float(os.getenv("DB_CONNECT_RETRY_DELAY", "1.5"))

# --- Auth --------------------------------------------------------------------
JWT_SECRET: str = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
# 7 days
JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", "10080"))

# --- M-Pesa ------------------------------------------------------------------
MPESA_BASE_URL: str = os.getenv("MPESA_BASE_URL", "https://sandbox.safaricom.co.ke")
MPESA_CONSUMER_KEY: str = os.getenv("MPESA_CONSUMER_KEY", "")
MPESA_CONSUMER_SECRET: str = os.getenv("MPESA_CONSUMER_SECRET", "")
MPESA_BUSINESS_SHORTCODE: str = os.getenv("MPESA_BUSINESS_SHORTCODE", "174379")
MPESA_PASSKEY: str = os.getenv("MPESA_PASSKEY", "")
MPESA_CALLBACK_URL: str = os.getenv(
    "MPESA_CALLBACK_URL", "http://localhost:5000/api/payments/callback"
)
MPESA_TIMEOUT_SECONDS: float = float(os.getenv("MPESA_TIMEOUT_SECONDS", "10"))

# --- HTTP --------------------------------------------------------------------
CLIENT_URL: str = os.getenv("CLIENT_URL", "http://localhost:3000")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
