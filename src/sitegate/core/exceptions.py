"""Sitegate exception base and user-facing error formatting."""

from __future__ import annotations


class SitegateError(Exception):
    """Base class for all errors raised by sitegate.

    Every error carries a short machine-readable ``code`` alongside the
    human-readable ``message`` so the CLI can title its error panels.
    """

    code: str = "SITEGATE_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return self.message


def format_error_for_user(error: BaseException) -> str:
    """Format any exception as a single line suitable for terminal output."""
    if isinstance(error, SitegateError):
        return f"[{error.code}] {error.message}"
    if isinstance(error, FileNotFoundError):
        return f"File not found: {error.filename or error}"
    if isinstance(error, PermissionError):
        return f"Permission denied: {error.filename or error}"
    if isinstance(error, UnicodeDecodeError):
        return f"File is not valid UTF-8: {error.reason}"
    message = str(error)
    return message or error.__class__.__name__
