"""Invox - batch invoice extraction with generative AI models."""

__version__ = "0.1.0"
