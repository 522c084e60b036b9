"""Tests for the Gemini client wrapper."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from invox.clients import GeminiInvoiceClient
from invox.clients.gemini_client import INLINE_LIMIT_BYTES
from invox.extraction import ExtractionRequest


def make_request(data: bytes = b"%PDF") -> ExtractionRequest:
    return ExtractionRequest(
        system_instruction="Extract invoices.",
        user_prompt="Return JSON.",
        json_schema={"type": "object"},
        file_bytes=data,
        mime_type="application/pdf",
        display_name="inv.pdf (#f1)",
    )


@pytest.fixture
def sdk():
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(text='{"invoice_number": "1"}')
    )
    client.aio.files.upload = AsyncMock(
        return_value=SimpleNamespace(uri="https://files.test/abc", mime_type="application/pdf")
    )
    return client


class TestGeminiInvoiceClient:
    """Tests for GeminiInvoiceClient.generate."""

    def test_build_config(self):
        config = GeminiInvoiceClient.build_config(make_request())

        assert config.response_mime_type == "application/json"
        assert config.response_json_schema == {"type": "object"}
        assert config.temperature == 0

    @pytest.mark.asyncio
    async def test_small_document_sent_inline(self, sdk):
        client = GeminiInvoiceClient("key", client=sdk)

        text = await client.generate(make_request(), "gemini-2.5-flash")

        assert text == '{"invoice_number": "1"}'
        sdk.aio.files.upload.assert_not_called()
        kwargs = sdk.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        document = kwargs["contents"][0].parts[1]
        assert document.inline_data.data == b"%PDF"

    @pytest.mark.asyncio
    async def test_large_document_uploaded(self, sdk):
        client = GeminiInvoiceClient("key", client=sdk)

        await client.generate(make_request(b"x" * (INLINE_LIMIT_BYTES + 1)), "gemini-2.5-pro")

        sdk.aio.files.upload.assert_awaited_once()
        document = sdk.aio.models.generate_content.call_args.kwargs["contents"][0].parts[1]
        assert document.file_data.file_uri == "https://files.test/abc"
