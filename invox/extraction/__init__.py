"""Invoice extraction prompts, inputs and response parsing."""

from .inputs import (
    ExtractionInput,
    ExtractionRequest,
    create_file_label,
    dedupe_label,
    infer_mime_type,
)
from .parsing import RAW_KEY, extract_first_text, parse_extraction_text
from .prompts import (
    ALLOWED_EXTENSIONS,
    INVOICE_JSON_SCHEMA,
    MIME_BY_EXTENSION,
    SYSTEM_INSTRUCTION,
    USER_PROMPT,
)

__all__ = [
    # Inputs
    "ExtractionInput",
    "ExtractionRequest",
    "create_file_label",
    "dedupe_label",
    "infer_mime_type",
    # Parsing
    "RAW_KEY",
    "extract_first_text",
    "parse_extraction_text",
    # Prompts
    "ALLOWED_EXTENSIONS",
    "INVOICE_JSON_SCHEMA",
    "MIME_BY_EXTENSION",
    "SYSTEM_INSTRUCTION",
    "USER_PROMPT",
]
