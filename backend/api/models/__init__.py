"""API models package."""

from .errors import GENERIC_ERROR_MESSAGE, ErrorResponse

__all__ = ["GENERIC_ERROR_MESSAGE", "ErrorResponse"]
