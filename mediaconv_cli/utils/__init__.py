"""
Small helpers for formatting and URL handling.
"""
