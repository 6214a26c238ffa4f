"""
mediaconv-cli: submit media-conversion jobs to a backend and follow their progress.
"""

__version__ = "0.3.0"
