"""
Exceptions raised by the normalize-and-compare pipeline.

Every error carries a short ``kind`` so the API layer can return a structured
``{"error": kind, "detail": message}`` body instead of a score.
"""


class FingerAuthError(Exception):
    """Base class for matching pipeline errors."""
    kind = "FingerAuthError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class DecodeError(FingerAuthError, ValueError):
    """The bytes are not an image format we can decode."""
    kind = "DecodeError"


class ImageReadError(FingerAuthError, IOError):
    """The image bytes could not be read from their source."""
    kind = "IOError"


class DimensionMismatchError(FingerAuthError, ValueError):
    """Two grids of different (or zero) length reached the scorer."""
    kind = "DimensionMismatchError"
