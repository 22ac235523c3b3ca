"""Callback implementations for the Gradio interface."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any, Callable, Optional

from config.settings import AppConfig
from modules.pipelines.gemini_image import GeminiImageService
from modules.services.storage_service import StorageService, download_all, download_one
from modules.services.studio_state import (
    GenerationStatus,
    ImageGenerator,
    StudioController,
    StudioSession,
    StudioState,
)
from modules.utils.image_utils import data_url_to_pil

logger = logging.getLogger(__name__)

StorageFactory = Callable[[Path], StorageService]


def render_error(state: StudioState) -> str:
    """Markdown shown under the prompt; empty when there is nothing to report."""
    if not state.error_message:
        return ""
    return f"**{state.error_message}**"


def render_gallery(state: StudioState) -> list[tuple[Any, str]]:
    """Gallery items, newest first, captioned with the prompt."""
    items: list[tuple[Any, str]] = []
    for image in state.history:
        caption = image.prompt
        if image.has_reference:
            caption = f"[REF USED] {caption}"
        items.append((data_url_to_pil(image.url), caption))
    return items


def render_reference(state: StudioState) -> Optional[Any]:
    if not state.reference_image:
        return None
    return data_url_to_pil(state.reference_image)


def download_all_label(state: StudioState) -> str:
    return f"Download All ({len(state.history)})"


def build_callbacks(
    config: AppConfig,
    generator: Optional[ImageGenerator] = None,
    controller: Optional[StudioController] = None,
    storage_factory: Optional[StorageFactory] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> dict[str, Any]:
    """Return a dictionary of Gradio callback functions."""

    studio = controller or StudioController(generator or GeminiImageService(config))
    make_storage = storage_factory or StorageService

    def _export_dir() -> Path:
        # one folder per export
        return Path(config.download_dir) / uuid.uuid4().hex

    def on_prompt_change(session: StudioSession, text: str) -> StudioSession:
        session.state = studio.set_prompt(session.state, text)
        return session

    def on_reference_upload(
        session: StudioSession, file_path: Optional[str]
    ) -> tuple[StudioSession, Optional[Any], Optional[str], str]:
        if not file_path:
            session.state = studio.clear_reference(session.state)
            return session, None, None, render_error(session.state)

        session.state = studio.load_reference(session.state, file_path)
        accepted = session.state.error_message is None
        # a rejected file is removed from the picker; the held reference stays
        file_value = file_path if accepted else None
        return session, render_reference(session.state), file_value, render_error(session.state)

    def on_clear_reference(session: StudioSession) -> tuple[StudioSession, None, None]:
        session.state = studio.clear_reference(session.state)
        return session, None, None

    def on_generate(
        session: StudioSession, prompt: str
    ) -> tuple[StudioSession, list[tuple[Any, str]], str, str]:
        session.state = studio.set_prompt(session.state, prompt)
        state = studio.generate_in(session)
        if state.status is GenerationStatus.ERROR:
            logger.warning("Generation ended in error: %s", state.error_message)
        return session, render_gallery(state), render_error(state), download_all_label(state)

    def on_download_all(session: StudioSession) -> tuple[Optional[list[str]], str]:
        history = session.state.history
        if not history:
            return None, "Nothing to download yet."

        kwargs: dict[str, Any] = {
            "delay": config.download_delay,
            "prefix": config.download_prefix,
        }
        if sleep is not None:
            kwargs["sleep"] = sleep
        try:
            paths = download_all(history, make_storage(_export_dir()), **kwargs)
        except Exception as exc:  # noqa: BLE001
            logger.error("Bulk export failed: %s", exc)
            return None, f"Download failed: {exc}"
        return [str(path) for path in paths], f"Prepared {len(paths)} image(s) for download."

    def on_download_one(session: StudioSession, index: Optional[int]) -> tuple[Optional[str], str]:
        history = session.state.history
        if index is None or not 0 <= index < len(history):
            return None, "Select an image to download."
        image = history[index]
        try:
            path = download_one(image, make_storage(_export_dir()), prefix=config.download_prefix)
        except Exception as exc:  # noqa: BLE001
            logger.error("Download of %s failed: %s", image.id, exc)
            return None, f"Download failed: {exc}"
        return str(path), f"Ready: {path.name}"

    return {
        "on_prompt_change": on_prompt_change,
        "on_reference_upload": on_reference_upload,
        "on_clear_reference": on_clear_reference,
        "on_generate": on_generate,
        "on_download_all": on_download_all,
        "on_download_one": on_download_one,
    }
