# qtcompress/exceptions.py
from typing import Tuple


class QuadtreeError(Exception):
    """Base class for every error raised by qtcompress."""
    category = "error"


class InvalidParameterError(QuadtreeError, ValueError):
    category = "bad input"


class ImageIOError(QuadtreeError, OSError):
    category = "I/O failure"


class InvariantViolation(QuadtreeError, RuntimeError):
    category = "internal invariant violation"


def describe_error(exc: BaseException) -> Tuple[str, str]:
    """Map an exception to the (category, message) pair shown to users."""
    if isinstance(exc, QuadtreeError):
        return exc.category, str(exc)
    if isinstance(exc, OSError):
        return ImageIOError.category, str(exc)
    return InvariantViolation.category, f"{type(exc).__name__}: {exc}"
