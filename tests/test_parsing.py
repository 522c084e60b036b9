"""Tests for extraction inputs and response parsing."""

from types import SimpleNamespace

import pytest

from invox.extraction import (
    create_file_label,
    dedupe_label,
    extract_first_text,
    infer_mime_type,
    parse_extraction_text,
)


class TestParseExtractionText:
    """Tests for parse_extraction_text."""

    def test_json_object(self):
        assert parse_extraction_text(' {"vendor": "ACME"} \n') == {"vendor": "ACME"}

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty(self, text):
        assert parse_extraction_text(text) == {"_raw": ""}

    @pytest.mark.parametrize("text", ["not json", "[1, 2]", '"just a string"', "{broken"])
    def test_non_object_kept_raw(self, text):
        assert parse_extraction_text(f"  {text}  ") == {"_raw": text}


class TestExtractFirstText:
    """Tests for extract_first_text."""

    def test_text_attribute(self):
        assert extract_first_text(SimpleNamespace(text='{"a": 1}')) == '{"a": 1}'

    def test_candidate_parts(self):
        response = SimpleNamespace(
            text=None,
            candidates=[
                SimpleNamespace(content=SimpleNamespace(parts=[SimpleNamespace(text=None)])),
                SimpleNamespace(content=SimpleNamespace(parts=[SimpleNamespace(text="second")])),
            ],
        )
        assert extract_first_text(response) == "second"

    def test_nothing(self):
        assert extract_first_text(None) == ""
        assert extract_first_text(SimpleNamespace(text=None, candidates=None)) == ""


class TestInputs:
    """Tests for labels and MIME inference."""

    def test_file_label(self):
        assert create_file_label("inv.pdf", "1a2b3c4d-5e6f") == "inv.pdf (#1a2b3c4d)"

    def test_dedupe_label(self):
        seen: dict[str, int] = {}

        assert [dedupe_label("a", seen) for _ in range(3)] == ["a", "a-2", "a-3"]
        assert dedupe_label("b", seen) == "b"

    @pytest.mark.parametrize(
        "name,declared,expected",
        [
            ("scan.PDF", None, "application/pdf"),
            ("photo.jpeg", None, "image/jpeg"),
            ("photo.jpeg", "image/png", "image/png"),
            ("archive.zip", None, "application/octet-stream"),
            (None, None, "application/octet-stream"),
        ],
    )
    def test_infer_mime_type(self, name, declared, expected):
        assert infer_mime_type(name, declared) == expected
