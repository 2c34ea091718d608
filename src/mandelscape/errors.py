from __future__ import annotations


class MandelscapeError(Exception):
    """Base class for every error raised by mandelscape."""


class InvalidConfigError(MandelscapeError, ValueError):
    """A parameter block was rejected before any tracing or extraction began."""


class ExtractionCancelled(MandelscapeError):
    """The host asked to abort an in-flight surface extraction."""


def require(condition: bool, msg: str) -> None:
    """Raise InvalidConfigError with msg unless condition holds."""
    if not condition:
        raise InvalidConfigError(msg)
