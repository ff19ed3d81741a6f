"""Error types raised by the fractalgrid package."""

from __future__ import annotations


class FractalGridError(Exception):
    """Base class for configuration errors detected before rendering."""


class NonInvertibleTransformError(FractalGridError):
    """Raised when a transform chain cannot be inverted."""


class InvalidCanvasDimensionsError(FractalGridError, ValueError):
    """Raised for a canvas or buffer with a zero or negative size."""


class ThreadSpawnError(FractalGridError):
    """A worker thread could not be started.

    The renderer recovers from this by rendering the whole canvas on the
    calling thread; the error is only logged.
    """
