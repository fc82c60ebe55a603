"""
Custom exceptions for the Lambda memory tuner package.
"""


class TunerException(Exception):
    """Base exception for all tuner-related errors."""
    pass


class ConfigurationError(TunerException):
    """Raised when there's an error in the configuration."""
    pass


class ValidationError(TunerException):
    """Raised when a function identifier or payload fails validation."""
    pass


class AWSPermissionError(TunerException):
    """Raised when AWS permissions are insufficient."""
    pass


class ReconfigurationError(TunerException):
    """Raised when a memory update is rejected or never becomes active."""

    def __init__(self, message: str, memory_size: int = None):
        super().__init__(message)
        self.memory_size = memory_size


class InvocationError(TunerException):
    """Raised when a Lambda invocation fails at the API level."""
    pass


class ThrottlingError(InvocationError):
    """Raised when Lambda throttles an invocation."""
    pass


class RestoreError(TunerException):
    """Raised when the original memory size could not be put back."""

    def __init__(self, message: str, function_id: str = None, memory_size: int = None):
        super().__init__(message)
        self.function_id = function_id
        self.memory_size = memory_size


class TemplateNotFoundError(TunerException):
    """Raised when a configuration template is not found."""
    pass
