"""
Action-related exceptions.
"""

from typing import Any, Optional

from actwright.exceptions.base import ActwrightError


class ActionError(ActwrightError):
    """Base exception for action-related errors."""
    pass


class InvalidProposal(ActionError):
    """
    The interpreter returned an action that fails local validation.
    
    This is a contract violation by the collaborator and is never retried.
    The offending payload is kept for diagnostics.
    """
    
    def __init__(self, message: str, payload: Any = None):
        super().__init__(message, {"payload": payload})
        self.payload = payload


class OptionNotFound(ActionError):
    """
    No option matched the requested text or value.
    """
    
    def __init__(self, message: str, option: str, available: Optional[list] = None):
        super().__init__(message, {"option": option, "available": available})
        self.option = option
        self.available = available or []


class ActionTimeout(ActionError):
    """
    Action timed out.
    
    Raised when an element did not become actionable in time or the
    caller's deadline passed.
    """
    
    def __init__(self, message: str, method: str, timeout_ms: int):
        super().__init__(message, {"method": method, "timeout_ms": timeout_ms})
        self.method = method
        self.timeout_ms = timeout_ms


class DriverError(ActionError):
    """
    The automation driver failed a primitive operation.
    """
    
    def __init__(self, message: str, operation: str, xpath: Optional[str] = None):
        super().__init__(message, {"operation": operation, "xpath": xpath})
        self.operation = operation
        self.xpath = xpath
