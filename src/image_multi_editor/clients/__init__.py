"""
Client adapter for the Gemini image editing API.
"""
from .gemini_image import GeminiImageClient

__all__ = ["GeminiImageClient"]
