"""Zendesk incremental ticket export streaming."""

__version__ = "0.1.0"
