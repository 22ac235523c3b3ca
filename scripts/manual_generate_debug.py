"""One-off script for debugging a real scene generation call."""

from pathlib import Path

from config.settings import load_config
from modules.pipelines.gemini_image import GeminiImageService
from modules.services.storage_service import StorageService, download_all
from modules.services.studio_state import GenerationStatus, StudioController, StudioState
from modules.utils.logging import setup_logging


def main() -> None:
    # 1. Real configuration and services (reads API_KEY from .env)
    config = load_config()
    setup_logging(config)
    controller = StudioController(GeminiImageService(config))

    # 2. Prompt and optional reference image (replace as needed)
    state = controller.set_prompt(StudioState(), "A red fox standing in fresh snow at dawn")
    reference_path = Path("tests/assets/debug_reference.png")
    if reference_path.exists():
        state = controller.load_reference(state, reference_path)

    # 3. Generate and save whatever came back
    state = controller.generate(state)
    print("Status:", state.status.value)
    if state.status is GenerationStatus.ERROR:
        print("Error:", state.error_message)
        return

    paths = download_all(state.history, StorageService(Path("debug_output")), delay=0)
    for path in paths:
        print("Saved:", path.resolve())


if __name__ == "__main__":
    main()
