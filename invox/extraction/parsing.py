"""Turning model responses into payloads."""

import logging
from typing import Any, Optional

import orjson

logger = logging.getLogger(__name__)

RAW_KEY = "_raw"


def extract_first_text(response: Any) -> str:
    """Return the first text part of a generate-content response.

    Accepts objects exposing ``text`` or ``candidates[].content.parts[].text``.
    """
    if response is None:
        return ""
    text = getattr(response, "text", None)
    if text:
        return text
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            part_text = getattr(part, "text", None)
            if part_text:
                return part_text
    return ""


def parse_extraction_text(text: Optional[str]) -> dict[str, Any]:
    """Parse response text as a JSON object.

    Never raises: text that is empty, not JSON, or JSON that is not an
    object is wrapped as ``{"_raw": text}``.
    """
    trimmed = (text or "").strip()
    if not trimmed:
        return {RAW_KEY: ""}
    try:
        parsed = orjson.loads(trimmed)
    except orjson.JSONDecodeError:
        logger.debug("Response is not valid JSON, keeping raw text")
        return {RAW_KEY: trimmed}
    if not isinstance(parsed, dict):
        return {RAW_KEY: trimmed}
    return parsed
