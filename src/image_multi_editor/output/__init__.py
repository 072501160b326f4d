"""
Export of generated variations.
"""
from .store import OutputStore

__all__ = ["OutputStore"]
