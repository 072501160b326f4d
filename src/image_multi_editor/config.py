from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

DEFAULT_API_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


class GeminiConfig(BaseModel):
    """Settings required to call the Gemini image model."""

    api_key: str = Field(..., min_length=1, description="Gemini API key")
    model: str = Field(
        default=DEFAULT_IMAGE_MODEL,
        description="Image-capable model used for edits and background removal",
    )
    api_url: str = Field(
        default=DEFAULT_API_URL,
        description="Base URL of the Generative Language REST API",
    )
    request_timeout_seconds: float = Field(
        default=120.0,
        ge=1.0,
        le=600.0,
        description="HTTP timeout applied to a single generateContent request",
    )
    task_timeout_seconds: float = Field(
        default=300.0,
        ge=1.0,
        le=3600.0,
        description="Upper bound on one unit of work, retries included",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per request when the API reports a transient failure",
    )


class OutputConfig(BaseModel):
    """Configuration for storing exported variations."""

    root_dir: Path = Field(default_factory=lambda: Path("output"))
    include_metadata: bool = Field(default=True, description="Persist a JSON sidecar next to each image")


class AppConfig(BaseModel):
    """Top-level configuration object consumed by the editor session."""

    gemini: GeminiConfig
    output: OutputConfig = Field(default_factory=OutputConfig)


def _bool_from_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _float_from_env(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid float value: {value}") from exc


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer value: {value}") from exc


def load_config(dotenv_path: str | Path | None = None) -> AppConfig:
    """
    Load configuration from environment variables (optionally seeded by a .env file).

    ``GEMINI_API_KEY`` is required; ``API_KEY`` is accepted as a fallback so
    existing deployments of the web front end keep working.

    Parameters
    ----------
    dotenv_path:
        Optional override for the .env file location. Defaults to project root.

    Raises
    ------
    RuntimeError
        If required configuration values are missing or malformed.
    """
    env_path = Path(dotenv_path) if dotenv_path else Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    data = {
        "gemini": {
            "api_key": os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
            "model": os.getenv("GEMINI_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            "api_url": os.getenv("GEMINI_API_URL", DEFAULT_API_URL),
            "request_timeout_seconds": _float_from_env(os.getenv("GEMINI_REQUEST_TIMEOUT"), 120.0),
            "task_timeout_seconds": _float_from_env(os.getenv("GEMINI_TASK_TIMEOUT"), 300.0),
            "max_attempts": _int_from_env(os.getenv("GEMINI_MAX_ATTEMPTS"), 3),
        },
        "output": {
            "root_dir": Path(os.getenv("OUTPUT_ROOT_DIR", "output")),
            "include_metadata": _bool_from_env(os.getenv("OUTPUT_INCLUDE_METADATA"), True),
        },
    }

    try:
        config = AppConfig.model_validate(data)
    except ValidationError as exc:
        missing = {"/".join(str(part) for part in err["loc"]) for err in exc.errors()}
        missing_str = ", ".join(sorted(missing))
        raise RuntimeError(f"Missing configuration values: {missing_str}") from exc

    return config
