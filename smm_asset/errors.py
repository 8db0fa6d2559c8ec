"""Client error types for Search Management Map asset interactions."""

from __future__ import annotations


class SmmClientError(Exception):
    """Base error for SMM asset client failures."""


class SmmTimeout(SmmClientError):
    """Timeout while communicating with the server."""


class SmmConnectionError(SmmClientError):
    """Network connection to the server failed."""


class SmmConfigError(SmmClientError):
    """Client configuration is missing or malformed."""
