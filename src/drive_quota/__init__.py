"""Quota monitoring and admission control for Google Drive API calls."""

__version__ = "0.1.0"
