"""Generation history tracking."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple


@dataclass(frozen=True, slots=True)
class GeneratedImage:
    """A finished generation kept in the session history."""

    id: str
    url: str  # data:image/png;base64,...
    prompt: str
    timestamp: int  # epoch milliseconds
    has_reference: bool


History = Tuple[GeneratedImage, ...]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return uuid.uuid4().hex


def create_entry(
    url: str,
    prompt: str,
    has_reference: bool,
    clock: Optional[Callable[[], int]] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> GeneratedImage:
    """Build a history entry with a fresh id and the current timestamp."""
    return GeneratedImage(
        id=(id_factory or _new_id)(),
        url=url,
        prompt=prompt,
        timestamp=(clock or _now_ms)(),
        has_reference=has_reference,
    )


def prepend(history: Sequence[GeneratedImage], entry: GeneratedImage) -> History:
    """Return a new history with ``entry`` as the newest item."""
    return (entry, *history)
