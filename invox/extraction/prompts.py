"""Prompt text and response schema for invoice extraction."""

from typing import Any

ALLOWED_EXTENSIONS = (
    ".pdf",
    ".png",
    ".jpg",
    ".jpeg",
    ".webp",
    ".tif",
    ".tiff",
    ".bmp",
    ".heic",
)

MIME_BY_EXTENSION: dict[str, str] = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".bmp": "image/bmp",
    ".heic": "image/heic",
}

FALLBACK_MIME = "application/octet-stream"


def _nullable(kind: str, description: str) -> dict[str, Any]:
    if kind == "number":
        return {"anyOf": [{"type": "number"}, {"type": "null"}], "description": description}
    return {"type": [kind, "null"], "description": description}


INVOICE_ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["HSN/SAC"],
    "properties": {
        "description": _nullable("string", "Item description or full text as printed on that line."),
        "name": _nullable("string", "Short item name."),
        "HSN/SAC": _nullable("string", "HSN/SAC code for the line item, as printed."),
        "quantity": _nullable("number", "Quantity billed for this line."),
        "unit": _nullable("string", 'Unit of measure, e.g. "Pc", "Nos", "Kg".'),
        "rate": _nullable("number", "Per-unit rate for this line (excluding tax if possible)."),
        "amount": _nullable("number", "Line amount, base amount exclusive of tax."),
        "cgst": _nullable("number", "CGST amount for this line, if separately available."),
        "sgst": _nullable("number", "SGST amount for this line, if separately available."),
        "cgst_rate": _nullable("number", "CGST rate in percent for this line."),
        "sgst_rate": _nullable("number", "SGST rate in percent for this line."),
    },
}

INVOICE_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["seller name", "invoce number", "date", "seller address", "items"],
    "properties": {
        # Parties & identifiers
        "seller name": _nullable("string", "Legal name of the seller as written on the invoice."),
        "seller address": _nullable("string", "Seller address block as printed."),
        "seller gstin": _nullable("string", "Seller GSTIN as printed on the invoice."),
        "buyer name": _nullable("string", "Buyer name as printed."),
        "buyer address": _nullable("string", "Buyer address block as printed."),
        "buyer gstin": _nullable("string", "Buyer GSTIN as printed on the invoice."),
        # Numbers & dates
        "invoce number": _nullable(
            "string", "Invoice number exactly as printed (key spelling is part of the contract)."
        ),
        "voucher number": _nullable("string", "Internal voucher number, null if not printed."),
        "reference number": _nullable("string", "Supplier's invoice number used as reference."),
        "date": _nullable("string", "Invoice date, ISO YYYY-MM-DD if parseable, else raw."),
        "reference date": _nullable("string", "Supplier's invoice date, ISO if parseable."),
        # Classification
        "voucher type": _nullable("string", 'High-level voucher type, e.g. "Purchase", "Sales".'),
        "place of supply": _nullable("string", "Place of supply / state name as printed."),
        # Totals
        "subtotal": _nullable("number", "Invoice subtotal before tax, if printed."),
        "tax total": _nullable("number", "Total tax on the invoice, if printed."),
        "grand total": _nullable("number", "Grand total payable as printed."),
        # Line items
        "items": {
            "type": "array",
            "description": "Line items detected on the invoice.",
            "items": INVOICE_ITEM_SCHEMA,
        },
    },
}

SYSTEM_INSTRUCTION = "\n".join(
    [
        "You are an invoice parser. Read the provided document (PDF or image) and extract ONLY the requested fields.",
        "Rules:",
        "1) Your output must strictly conform to the INVOICE_JSON_SCHEMA provided by the client.",
        "2) If a field is missing or cannot be confidently determined, use null (or an empty array for items).",
        "3) Do NOT invent, guess, or normalize values beyond what is printed.",
        "4) Strip currency symbols and thousand separators from numeric amounts.",
        "5) Use GST values only when explicitly present; never back-calculate taxes or totals.",
        "6) Prefer ISO date format (YYYY-MM-DD) when the date parses reliably; otherwise return it as printed.",
        "7) Preserve original spelling and case for all text fields.",
        "8) The items array must always be present (at least an empty array).",
        "9) Return ONLY a single valid JSON object, with no extra text before or after.",
    ]
)

USER_PROMPT = (
    "Given a single invoice document (PDF or image), extract a JSON object that strictly "
    "matches INVOICE_JSON_SCHEMA. Follow all rules in SYSTEM_INSTRUCTION: do not invent "
    "values, use null when fields are missing, and return ONLY the JSON object."
)
