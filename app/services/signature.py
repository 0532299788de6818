from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from models.document import ImageInstruction, RenderInstruction, StyledTextInstruction

from .formatting import safe_text

DEFAULT_SIGNATURE_FONT = "cursive"
IMAGE_PREFIX = "data:image"
SIGNATURE_MAX_WIDTH = 200
SIGNATURE_MAX_HEIGHT = 60

# Checked in order; "imageData" is the current record shape, the others are legacy.
IMAGE_FIELDS = ("imageData", "image_data", "dataURL", "data_url", "data")


def _field(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


def is_image_data(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(IMAGE_PREFIX)


def _image(source: str) -> ImageInstruction:
    return ImageInstruction(source=source, max_width=SIGNATURE_MAX_WIDTH, max_height=SIGNATURE_MAX_HEIGHT)


def _render_record(value: Any) -> Optional[RenderInstruction]:
    for name in IMAGE_FIELDS:
        candidate = _field(value, name)
        if is_image_data(candidate):
            return _image(candidate)

    text = safe_text(_field(value, "text"))
    if text.strip():
        font = safe_text(_field(value, "fontFamily") or _field(value, "font_family")).strip()
        return StyledTextInstruction(text=text, font_family=font or DEFAULT_SIGNATURE_FONT)
    return None


def render_signature(value: Any) -> Optional[RenderInstruction]:
    """Resolve any stored signature shape into a render instruction.

    Structured records are inspected before plain strings and image data
    wins over text. Unrecognised input renders nothing.
    """
    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        if is_image_data(value):
            return _image(value)
        # Legacy plain-text signatures carry no font metadata.
        return StyledTextInstruction(text=value, font_family=DEFAULT_SIGNATURE_FONT)
    if isinstance(value, (bool, int, float, list, tuple, set, bytes)):
        return None
    return _render_record(value)


def has_renderable_signature(value: Any) -> bool:
    return render_signature(value) is not None


def signature_timestamp(value: Any) -> str:
    if value is None or isinstance(value, str):
        return ""
    if isinstance(value, (bool, int, float, list, tuple, set, bytes)):
        return ""
    return safe_text(_field(value, "timestamp"))


__all__ = [
    "DEFAULT_SIGNATURE_FONT",
    "has_renderable_signature",
    "is_image_data",
    "render_signature",
    "signature_timestamp",
]
