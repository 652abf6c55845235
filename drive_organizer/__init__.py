"""Reorganize Google Drive files with AI suggestions and interactive confirmation."""

__version__ = "0.1.0"
