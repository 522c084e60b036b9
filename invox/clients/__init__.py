"""API clients for generative extraction models."""

from .gemini_client import GeminiInvoiceClient

__all__ = ["GeminiInvoiceClient"]
