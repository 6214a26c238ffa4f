"""
Backend API Layer.

This package handles all communication with the conversion backend.
"""

from .client import ConverterAPIClient

__all__ = ["ConverterAPIClient"]
