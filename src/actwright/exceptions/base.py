"""
Base exceptions for Actwright.
"""


class ActwrightError(Exception):
    """
    Base exception for all Actwright errors.
    
    All custom exceptions inherit from this class, making it easy
    to catch any error from the library.
    
    Attributes:
        message: Human-readable error message
        details: Optional additional error details (offending payload, ids)
    """
    
    needs_reobservation: bool = False
    
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(ActwrightError):
    """
    Error in configuration.
    
    Raised when there's an issue with settings, environment variables,
    or configuration files.
    """
    pass


class InterpreterError(ActwrightError):
    """
    The interpreter collaborator could not be reached or returned
    something that is not parseable at all.
    
    A well-formed but invalid payload is an InvalidProposal instead.
    """
    pass
