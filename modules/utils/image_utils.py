"""Helpers for converting uploaded images to and from data URLs."""

from __future__ import annotations

import base64
import io
import mimetypes
from pathlib import Path
from typing import BinaryIO, Optional, Union

from PIL import Image

from modules.utils.errors import ValidationError

ImageSource = Union[str, Path, BinaryIO]

NOT_AN_IMAGE_MESSAGE = "Please upload a valid image file."


def _declared_content_type(source: ImageSource, content_type: Optional[str]) -> str:
    if content_type:
        return content_type
    name = source if isinstance(source, (str, Path)) else getattr(source, "name", "")
    guessed, _ = mimetypes.guess_type(str(name or ""))
    return guessed or ""


def _read_bytes(source: ImageSource) -> bytes:
    if isinstance(source, (str, Path)):
        return Path(source).read_bytes()
    return source.read()


def to_data_url(payload: str, mime_type: str = "image/png") -> str:
    """Wrap an already base64-encoded payload in a data URL."""
    return f"data:{mime_type};base64,{payload}"


def encode_image_file(source: ImageSource, content_type: Optional[str] = None) -> str:
    """Read an image upload and return it as a base64 data URL.

    The declared content type is taken from ``content_type`` or guessed from the
    file name. Anything that is not ``image/*`` is rejected before the file is read.
    """
    mime_type = _declared_content_type(source, content_type)
    if not mime_type.startswith("image/"):
        raise ValidationError(NOT_AN_IMAGE_MESSAGE)

    payload = base64.b64encode(_read_bytes(source)).decode("ascii")
    return to_data_url(payload, mime_type)


def strip_data_url_header(data_url: str) -> str:
    """Return only the encoded payload of a data URL."""
    if "," not in data_url:
        return data_url
    return data_url.split(",", 1)[1]


def data_url_mime_type(data_url: str) -> Optional[str]:
    """Return the MIME type declared in a data URL header, if any."""
    if not data_url.startswith("data:") or "," not in data_url:
        return None
    header = data_url[len("data:"):].split(",", 1)[0]
    mime_type = header.split(";", 1)[0].strip()
    return mime_type or None


def decode_data_url(data_url: str) -> bytes:
    """Decode the payload of a base64 data URL into raw bytes."""
    return base64.b64decode(strip_data_url_header(data_url))


def data_url_to_pil(data_url: str) -> Image.Image:
    """Open a data URL as a PIL image for display components."""
    image = Image.open(io.BytesIO(decode_data_url(data_url)))
    image.load()
    return image
