"""
Extraction exceptions.
"""

from typing import Any

from actwright.exceptions.base import ActwrightError


class ExtractionError(ActwrightError):
    """Base exception for structured extraction errors."""
    pass


class SchemaMismatch(ExtractionError):
    """
    The interpreter's output does not conform to the requested schema.
    
    Extraction is all-or-nothing, so one bad field fails the whole result.
    """
    
    def __init__(self, message: str, field: str, payload: Any = None):
        super().__init__(message, {"field": field, "payload": payload})
        self.field = field
        self.payload = payload
