"""Core types shared by every layer.

Configuration lives in ``autorel.core.config``; it depends on the release
model and is not re-exported here so that release modules can import
``autorel.core`` freely.
"""

from .errors import ErrorCode
from .result import Err, Ok, Result

__all__ = [
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
]
