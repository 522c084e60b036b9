"""Gemini API client for invoice extraction.

Sends one document per request and returns the raw response text.
Documents above the inline size limit are uploaded through the Files API
and referenced by URI.
"""

import io
import logging
from typing import Optional

from google import genai
from google.genai import types

from ..extraction.inputs import ExtractionRequest
from ..extraction.parsing import extract_first_text

logger = logging.getLogger(__name__)

# Gemini rejects inline request bodies above roughly 20 MB
INLINE_LIMIT_BYTES = 18 * 1024 * 1024


class GeminiInvoiceClient:
    """Async extraction backend over the google-genai SDK."""

    def __init__(self, api_key: str, client: Optional[genai.Client] = None):
        """Initialize the client.

        Args:
            api_key: Gemini API key.
            client: Preconfigured SDK client. Created from api_key if None.
        """
        self._client = client or genai.Client(api_key=api_key)

    @staticmethod
    def build_config(request: ExtractionRequest) -> types.GenerateContentConfig:
        """Generation config asking for schema-conforming JSON."""
        return types.GenerateContentConfig(
            system_instruction=request.system_instruction,
            response_mime_type="application/json",
            response_json_schema=request.json_schema,
            temperature=0,
        )

    async def _document_part(self, request: ExtractionRequest) -> types.Part:
        if len(request.file_bytes) <= INLINE_LIMIT_BYTES:
            return types.Part.from_bytes(data=request.file_bytes, mime_type=request.mime_type)

        logger.debug(
            f"Uploading {request.display_name or 'document'} "
            f"({len(request.file_bytes)} bytes) via Files API"
        )
        uploaded = await self._client.aio.files.upload(
            file=io.BytesIO(request.file_bytes),
            config=types.UploadFileConfig(
                mime_type=request.mime_type,
                display_name=request.display_name,
            ),
        )
        if not uploaded.uri:
            raise RuntimeError(f"Upload for {request.display_name} missing file URI")
        return types.Part.from_uri(
            file_uri=uploaded.uri,
            mime_type=uploaded.mime_type or request.mime_type,
        )

    async def generate(self, request: ExtractionRequest, model: str) -> str:
        """Run one extraction request against a model.

        Returns:
            The response text (expected, not guaranteed, to be JSON).

        Raises:
            google.genai.errors.APIError: On API failures, including 429.
        """
        document = await self._document_part(request)
        response = await self._client.aio.models.generate_content(
            model=model,
            contents=[
                types.Content(
                    role="user",
                    parts=[types.Part.from_text(text=request.user_prompt), document],
                )
            ],
            config=self.build_config(request),
        )
        return extract_first_text(response)
