"""Configuration helpers for the Character Scene Studio project."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

DEFAULT_MODEL_NAME = "gemini-2.5-flash-image"
DEFAULT_ASPECT_RATIO = "1:1"


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    api_key: Optional[str] = None
    model_name: str = DEFAULT_MODEL_NAME
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    log_dir: Path = Path("logs")
    download_dir: Path = Path("downloads")
    download_prefix: str = "scene-studio"
    download_delay: float = 0.5
    server_name: Optional[str] = None
    server_port: Optional[int] = None
    metadata: dict[str, Any] = field(default_factory=dict)


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ[key.strip()] = value.strip().strip('"').strip("'")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return max(0.0, float(raw))
    except ValueError:
        return default


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    api_key = os.getenv("API_KEY") or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")

    log_dir = Path(os.getenv("LOG_DIR", "logs")).expanduser()
    download_dir = Path(os.getenv("DOWNLOAD_DIR", "downloads")).expanduser().resolve()

    metadata: dict[str, Any] = {}
    if api_key:
        for env_name in ("API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"):
            if os.getenv(env_name):
                metadata["api_key_source"] = env_name
                break

    return AppConfig(
        api_key=api_key or None,
        model_name=os.getenv("GEMINI_IMAGE_MODEL") or DEFAULT_MODEL_NAME,
        aspect_ratio=os.getenv("IMAGE_ASPECT_RATIO") or DEFAULT_ASPECT_RATIO,
        log_dir=log_dir,
        download_dir=download_dir,
        download_prefix=os.getenv("DOWNLOAD_PREFIX") or "scene-studio",
        download_delay=_env_float("DOWNLOAD_DELAY", 0.5),
        server_name=os.getenv("SERVER_NAME") or None,
        server_port=_env_int("SERVER_PORT"),
        metadata=metadata,
    )
