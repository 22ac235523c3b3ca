"""Application entry point for the Character Scene Studio project."""

from __future__ import annotations

from typing import Optional

from config.settings import load_config
from modules.ui.layout import build_app
from modules.utils.logging import setup_logging


def main(config_path: Optional[str] = None) -> None:
    """Load configuration and launch the Gradio interface."""
    config = load_config(config_path)
    logger = setup_logging(config)
    if not config.api_key:
        logger.warning("No API key configured; every generation will fail until one is set.")

    app = build_app(config)
    app.queue()
    app.launch(
        share=False,
        inbrowser=False,
        server_name=config.server_name,
        server_port=config.server_port,
        allowed_paths=[str(config.download_dir)],
    )


if __name__ == "__main__":
    main()
