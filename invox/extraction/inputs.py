"""Normalized extraction inputs."""

from dataclasses import dataclass
from pathlib import PurePath
from typing import Optional

from .prompts import FALLBACK_MIME, MIME_BY_EXTENSION


@dataclass
class ExtractionInput:
    """A document ready to be sent to an extraction model."""

    file_id: str
    label: str
    data: bytes
    mime_type: str


@dataclass
class ExtractionRequest:
    """Everything the AI endpoint receives for one attempt."""

    system_instruction: str
    user_prompt: str
    json_schema: dict
    file_bytes: bytes
    mime_type: str
    display_name: Optional[str] = None


def infer_mime_type(name: Optional[str], declared: Optional[str] = None) -> str:
    """Pick a MIME type: the declared one, else by extension, else octet-stream."""
    if declared:
        return declared
    if not name:
        return FALLBACK_MIME
    return MIME_BY_EXTENSION.get(PurePath(name).suffix.lower(), FALLBACK_MIME)


def create_file_label(file_name: str, file_id: str) -> str:
    """Human-readable label, e.g. ``invoice.pdf (#1a2b3c4d)``."""
    return f"{file_name} (#{file_id[:8]})"


def dedupe_label(label: str, seen: dict[str, int]) -> str:
    """Suffix repeated labels with -2, -3, ... in encounter order."""
    count = seen.get(label, 0)
    seen[label] = count + 1
    return label if count == 0 else f"{label}-{count + 1}"
