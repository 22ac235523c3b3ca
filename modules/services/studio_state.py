"""Session state for the studio and the controller that drives generation.

State is an immutable ``StudioState``; every change goes through ``reduce`` as a
discrete action. The Gradio callbacks keep the latest state in a per-session
``StudioSession`` holder; tests can hand states in and get the next state back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Protocol, Union

from modules.services.history_service import GeneratedImage, History, create_entry, prepend
from modules.utils.errors import StudioError, ValidationError
from modules.utils.image_utils import data_url_mime_type, encode_image_file, strip_data_url_header

logger = logging.getLogger(__name__)

EMPTY_PROMPT_MESSAGE = "Please enter a scene prompt."
BUSY_MESSAGE = "A generation is already in progress."
GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."


class GenerationStatus(str, Enum):
    """Lifecycle of a generation request."""

    IDLE = "IDLE"
    LOADING = "LOADING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass(frozen=True, slots=True)
class StudioState:
    """Everything the page renders for one browser session."""

    prompt: str = ""
    reference_image: Optional[str] = None
    status: GenerationStatus = GenerationStatus.IDLE
    error_message: Optional[str] = None
    history: History = ()


@dataclass(slots=True)
class StudioSession:
    """Mutable holder for one browser session's latest ``StudioState``.

    Gradio hands every event of a session the same holder, so an outcome that
    arrives after a long call can be applied to the state as it is by then.
    """

    state: StudioState = field(default_factory=StudioState)


@dataclass(frozen=True, slots=True)
class GenerationJob:
    """Inputs captured when a generation starts."""

    prompt: str
    reference_payload: Optional[str] = None
    reference_mime_type: str = "image/png"

    @property
    def has_reference(self) -> bool:
        return self.reference_payload is not None


# Actions ----------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PromptChanged:
    text: str


@dataclass(frozen=True, slots=True)
class ReferenceChanged:
    data_url: Optional[str]


@dataclass(frozen=True, slots=True)
class ReferenceCleared:
    pass


@dataclass(frozen=True, slots=True)
class ValidationFailed:
    message: str


@dataclass(frozen=True, slots=True)
class GenerationRequested:
    pass


@dataclass(frozen=True, slots=True)
class GenerationSucceeded:
    image: GeneratedImage


@dataclass(frozen=True, slots=True)
class GenerationSettled:
    pass


@dataclass(frozen=True, slots=True)
class GenerationFailed:
    message: str


Action = Union[
    PromptChanged,
    ReferenceChanged,
    ReferenceCleared,
    ValidationFailed,
    GenerationRequested,
    GenerationSucceeded,
    GenerationSettled,
    GenerationFailed,
]


def reduce(state: StudioState, action: Action) -> StudioState:
    """Apply one action and return the next state."""
    if isinstance(action, PromptChanged):
        return replace(state, prompt=action.text)
    if isinstance(action, ReferenceChanged):
        return replace(state, reference_image=action.data_url, error_message=None)
    if isinstance(action, ReferenceCleared):
        return replace(state, reference_image=None)
    if isinstance(action, ValidationFailed):
        return replace(state, error_message=action.message)
    if isinstance(action, GenerationRequested):
        if state.status is GenerationStatus.LOADING:
            return state
        return replace(state, status=GenerationStatus.LOADING, error_message=None)
    if isinstance(action, GenerationSucceeded):
        if state.status is not GenerationStatus.LOADING:
            return state
        return replace(
            state,
            status=GenerationStatus.SUCCESS,
            error_message=None,
            history=prepend(state.history, action.image),
        )
    if isinstance(action, GenerationSettled):
        # SUCCESS is transient; ERROR stays visible until the next attempt.
        if state.status is GenerationStatus.SUCCESS:
            return replace(state, status=GenerationStatus.IDLE)
        return state
    if isinstance(action, GenerationFailed):
        return replace(state, status=GenerationStatus.ERROR, error_message=action.message)
    raise TypeError(f"Unknown action: {action!r}")


class ImageGenerator(Protocol):
    """Anything that turns a prompt (and optional reference) into a data URL."""

    def generate(
        self,
        prompt: str,
        reference_image_base64: Optional[str] = None,
        reference_mime_type: str = "image/png",
    ) -> str:
        ...


class StudioController:
    """Orchestrate prompt validation, generation and history updates."""

    def __init__(
        self,
        generator: ImageGenerator,
        clock: Optional[Callable[[], int]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.generator = generator
        self._clock = clock
        self._id_factory = id_factory

    def set_prompt(self, state: StudioState, text: str) -> StudioState:
        return reduce(state, PromptChanged(text or ""))

    def set_reference(self, state: StudioState, data_url: Optional[str]) -> StudioState:
        if data_url is None:
            return reduce(state, ReferenceCleared())
        return reduce(state, ReferenceChanged(data_url))

    def clear_reference(self, state: StudioState) -> StudioState:
        return reduce(state, ReferenceCleared())

    def load_reference(
        self,
        state: StudioState,
        source: Union[str, Path, BinaryIO],
        content_type: Optional[str] = None,
    ) -> StudioState:
        """Encode an uploaded file and hold it as the reference image."""
        try:
            data_url = encode_image_file(source, content_type)
        except ValidationError as exc:
            return reduce(state, ValidationFailed(exc.message))
        return reduce(state, ReferenceChanged(data_url))

    def start_generation(self, state: StudioState) -> tuple[StudioState, Optional[GenerationJob]]:
        """Validate the prompt and move to LOADING.

        Returns the next state and the job to run, or ``None`` when the request
        was rejected (the state then carries the validation message).
        """
        if not state.prompt.strip():
            return reduce(state, ValidationFailed(EMPTY_PROMPT_MESSAGE)), None
        if state.status is GenerationStatus.LOADING:
            return reduce(state, ValidationFailed(BUSY_MESSAGE)), None

        state = reduce(state, GenerationRequested())
        reference = state.reference_image
        job = GenerationJob(
            prompt=state.prompt,
            reference_payload=strip_data_url_header(reference) if reference else None,
            reference_mime_type=(data_url_mime_type(reference) if reference else None) or "image/png",
        )
        return state, job

    def run_generation(self, job: GenerationJob) -> Union[GenerationSucceeded, GenerationFailed]:
        """Call the generator once and describe the outcome as an action."""
        try:
            url = self.generator.generate(job.prompt, job.reference_payload, job.reference_mime_type)
        except StudioError as exc:
            logger.error("Generation failed: %s", exc)
            return GenerationFailed(exc.message or GENERIC_FAILURE_MESSAGE)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected generation failure")
            return GenerationFailed(str(exc) or GENERIC_FAILURE_MESSAGE)

        image = create_entry(
            url=url,
            prompt=job.prompt,
            has_reference=job.has_reference,
            clock=self._clock,
            id_factory=self._id_factory,
        )
        logger.info("Generated image %s", image.id)
        return GenerationSucceeded(image)

    def finish_generation(
        self, state: StudioState, outcome: Union[GenerationSucceeded, GenerationFailed]
    ) -> StudioState:
        """Apply an outcome to whatever the state is now and settle it."""
        return reduce(reduce(state, outcome), GenerationSettled())

    def generate(self, state: StudioState) -> StudioState:
        """Run one generation and return the settled state."""
        state, job = self.start_generation(state)
        if job is None:
            return state
        return self.finish_generation(state, self.run_generation(job))

    def generate_in(self, session: StudioSession) -> StudioState:
        """Run one generation against a live session.

        The outcome is merged into ``session.state`` as it is when the call
        returns, so reference or prompt edits made meanwhile are kept.
        """
        session.state, job = self.start_generation(session.state)
        if job is not None:
            outcome = self.run_generation(job)
            session.state = self.finish_generation(session.state, outcome)
        return session.state
