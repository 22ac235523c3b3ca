"""Saving generated images for download."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, List, Protocol, Sequence

from modules.services.history_service import GeneratedImage
from modules.utils.image_utils import decode_data_url

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "scene-studio"
DEFAULT_DELAY_SECONDS = 0.5


class DownloadSink(Protocol):
    """Receives one download at a time."""

    def trigger(self, url: str, filename: str) -> Path:
        ...


class StorageService:
    """Write data-URL images into a download directory."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def trigger(self, url: str, filename: str) -> Path:
        """Persist one image and return the file path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / Path(filename).name
        path.write_bytes(decode_data_url(url))
        logger.info("Saved download %s", path)
        return path


def bulk_filename(index: int, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}-gen-{index + 1}.png"


def single_filename(image: GeneratedImage, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}-ai-{image.id}.png"


def download_one(
    image: GeneratedImage,
    sink: DownloadSink,
    prefix: str = DEFAULT_PREFIX,
) -> Path:
    """Trigger a download for a single history entry."""
    return sink.trigger(image.url, single_filename(image, prefix))


def download_all(
    history: Sequence[GeneratedImage],
    sink: DownloadSink,
    delay: float = DEFAULT_DELAY_SECONDS,
    prefix: str = DEFAULT_PREFIX,
    sleep: Callable[[float], None] = time.sleep,
) -> List[Path]:
    """Trigger one download per history entry, newest first, paced by ``delay``.

    Downloads are strictly sequential; ``delay`` seconds pass between two
    consecutive triggers. An empty history triggers nothing.
    """
    paths: List[Path] = []
    if not history:
        return paths

    for index, image in enumerate(history):
        if index:
            sleep(delay)
        paths.append(sink.trigger(image.url, bulk_filename(index, prefix)))

    logger.info("Bulk export finished: %d file(s)", len(paths))
    return paths
