"""
Exception types raised by the coloring engine.

All of them are recoverable: the session stays usable and the caller can
retry the stroke, fill, clear or export.
"""


class ColorbookError(Exception):
    """Base class for coloring engine errors."""


class ReferenceLoadError(ColorbookError):
    """The line-art image could not be read or decoded."""


class ReferenceNotReadyError(ColorbookError):
    """An operation needs the reference layer but it has not finished loading."""

    def __init__(self, status: str):
        super().__init__(f"Reference layer is not ready (status: {status})")
        self.status = status


class ExportError(ColorbookError):
    """The composited image could not be encoded."""


class SessionClosedError(ColorbookError):
    """The session was closed and its buffers released."""
