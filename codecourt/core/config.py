"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    GEMINI_API_KEY         - Google Gemini API key used by the streaming client
    GEMINI_MODEL           - Model name (default: gemini-2.5-flash)
    GEMINI_BASE_URL        - REST endpoint root (default: v1beta public endpoint)
    GEMINI_STREAM_TIMEOUT  - Read timeout in seconds between streamed events (default: 120)
    LOG_LEVEL              - Root log level name (default: INFO)
    LOG_DIR                - Directory for the daily log file (default: logs)
    CORS_ORIGINS           - Comma separated list of allowed frontend origins

Timeout Philosophy:
    The core never imposes its own deadline on a run. A hung upstream stream
    surfaces as an httpx read timeout, which the orchestrator records as a
    terminal "error" status with the partial issues kept.
"""
import os
from dotenv import load_dotenv

load_dotenv()

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
)
GEMINI_STREAM_TIMEOUT = float(os.getenv("GEMINI_STREAM_TIMEOUT", 120))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")

CORS_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
    ).split(",")
    if origin.strip()
]
