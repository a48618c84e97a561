"""
Central configuration for the machine health service.
All values come from environment variables (optionally a .env file) with sensible defaults.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def _env_bool(key: str, default: bool = False) -> bool:
    val = os.getenv(key, "").lower()
    if val in ("true", "1", "yes"):
        return True
    if val in ("false", "0", "no"):
        return False
    return default


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None

    # Artifact storage: "supabase" | "local" | "memory"
    artifact_backend: str = "supabase"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_bucket: str = "audio-uploads"
    artifact_dir: str = "./artifacts"

    # Classification
    classifier: str = "stub"
    classifier_delay_seconds: float = 2.0
    classifier_timeout_seconds: float = 30.0

    # Intake
    max_upload_bytes: int = 25 * 1024 * 1024
    transcode_to_flac: bool = False

    log_level: str = "INFO"
    cors_origins: Tuple[str, ...] = ("*",)


def load_settings() -> Settings:
    """Read settings from the current environment."""
    origins = tuple(o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip())
    return Settings(
        database_url=os.getenv("DATABASE_URL") or None,
        artifact_backend=os.getenv("ARTIFACT_BACKEND", "supabase").lower(),
        supabase_url=os.getenv("SUPABASE_URL") or None,
        supabase_key=os.getenv("SUPABASE_KEY") or None,
        supabase_bucket=os.getenv("SUPABASE_BUCKET", "audio-uploads"),
        artifact_dir=os.getenv("ARTIFACT_DIR", "./artifacts"),
        classifier=os.getenv("CLASSIFIER", "stub").lower(),
        classifier_delay_seconds=_env_float("CLASSIFIER_DELAY_SECONDS", 2.0),
        classifier_timeout_seconds=_env_float("CLASSIFIER_TIMEOUT_SECONDS", 30.0),
        max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", 25 * 1024 * 1024),
        transcode_to_flac=_env_bool("TRANSCODE_TO_FLAC", False),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=origins or ("*",),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
