import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Config:
    api_key: str
    http_timeout_ms: int
    video_poll_interval: float
    video_status_interval: float
    video_fetch_timeout: float
    log_level: str
    port: int
    debug: bool


def load_config():
    """Read configuration from the environment (and .env, if present).

    Invalid numeric values raise ValueError so a bad deployment fails at startup.
    """
    return Config(
        api_key=os.getenv("GEMINI_API_KEY", ""),
        http_timeout_ms=int(os.getenv("HTTP_TIMEOUT", "300000")),
        video_poll_interval=float(os.getenv("VIDEO_POLL_INTERVAL", "5")),
        video_status_interval=float(os.getenv("VIDEO_STATUS_INTERVAL", "8")),
        video_fetch_timeout=float(os.getenv("VIDEO_FETCH_TIMEOUT", "120")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=int(os.getenv("PORT", "5001")),
        debug=os.getenv("FLASK_DEBUG", "").lower() in ("1", "true", "yes"),
    )
