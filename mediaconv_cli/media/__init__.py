"""
Media File Layer.

This package is responsible for writing converted files to disk.
"""

from .saver import FileSaver, close_connection_pool

__all__ = ["FileSaver", "close_connection_pool"]
