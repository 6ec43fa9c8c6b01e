"""
Sketchlab error types.

Every error raised on purpose by the pipeline derives from SketchlabError so
callers (the CLI, an embedding UI) can catch the whole family at once.
"""

from typing import Optional


class SketchlabError(Exception):
    """Base class for all sketchlab errors."""


class InvalidInputError(SketchlabError, ValueError):
    """Input rejected before any processing started.

    Raised for non-image uploads, thresholds outside [0, 255], non-positive
    target widths and unknown export formats.
    """


class DecodeError(SketchlabError):
    """Image bytes could not be decoded (corrupt or unsupported format)."""


class ExportError(SketchlabError):
    """Producing or delivering a single export artifact failed."""

    def __init__(self, message: str, spec=None):
        super().__init__(message)
        self.spec = spec

    @property
    def filename(self) -> Optional[str]:
        return self.spec.filename if self.spec is not None else None
