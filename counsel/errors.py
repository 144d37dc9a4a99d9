"""Errors raised by the relays and turned into `{error}` replies by the app."""

from __future__ import annotations


class CounselError(Exception):
    """Base class for every failure a relay reports to the browser."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(CounselError):
    """A server-side credential is missing."""

    status_code = 500


class BadRequestError(CounselError):
    """The client sent a missing or malformed input."""

    status_code = 400


class UpstreamError(CounselError):
    """A third-party API answered with a non-success status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(body, status_code)
        self.body = body


class InternalError(CounselError):
    """Something unexpected broke while handling a relay request."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
