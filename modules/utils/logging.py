"""Logging setup for the studio.

Records go to ``<log_dir>/application.log`` and to the console under the
``scene_studio`` logger. Upload rejections, Gemini failures and export errors
are logged by the modules that handle them; request lines from the HTTP
client are kept at WARNING.
"""

from __future__ import annotations

import logging
from pathlib import Path

from config.settings import AppConfig


def setup_logging(config: AppConfig) -> logging.Logger:
    """Configure the root handlers and return the application logger."""
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_dir / "application.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    # httpx logs every request line at INFO through the Gemini SDK
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)
    return logging.getLogger("scene_studio")
