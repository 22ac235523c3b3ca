"""Error taxonomy shared by the generation client and the state controller."""

from __future__ import annotations


class StudioError(Exception):
    """Base class for every error surfaced to the user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(StudioError):
    """Rejected user input: empty prompt, non-image upload, busy generator."""


class ConfigurationError(StudioError):
    """The API credential is not available."""


class UpstreamError(StudioError):
    """Transport or API level failure reported by the image model."""


class EmptyResponseError(StudioError):
    """A well-formed response that carried no image payload."""
