"""
Custom exceptions for render annotation analysis.

Findings about the analyzed source are never raised: they are collected as
discrepancies. The exceptions below describe failures of the host environment
(missing grammars, unreadable files, bad configuration) and cooperative
cancellation of an analysis run.
"""


class ReactAnnotationError(Exception):
    """Base exception for all render annotation errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ReactAnnotationError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: str = None, config_value: str = None):
        super().__init__(message)
        self.config_key = config_key
        self.config_value = config_value


class DependencyError(ReactAnnotationError):
    """Raised when a tree-sitter grammar package is missing or incompatible."""

    def __init__(self, message: str, dependency_name: str = None):
        super().__init__(message)
        self.dependency_name = dependency_name


class SourceParseError(ReactAnnotationError):
    """Raised when a source unit cannot be read or handed to the parser."""

    def __init__(self, message: str, file_path: str = None, details: dict = None):
        super().__init__(message, details)
        self.file_path = file_path


class MalformedTagError(ReactAnnotationError):
    """Raised by the doc tag grammar when a tag body cannot be parsed."""

    def __init__(self, message: str, tag_name: str = None, raw_text: str = None):
        super().__init__(message)
        self.tag_name = tag_name
        self.raw_text = raw_text


class AnalysisCancelled(ReactAnnotationError):
    """Raised at a cooperative check point once cancellation was requested."""

    def __init__(self, message: str = "Analysis cancelled", file_path: str = None):
        super().__init__(message)
        self.file_path = file_path


# Exception mapping for easier categorization
HOST_ERRORS = (DependencyError, SourceParseError)
VALIDATION_ERRORS = (ConfigurationError, MalformedTagError)


def categorize_exception(exception: Exception) -> str:
    """
    Categorize an exception for error reporting and handling.

    Args:
        exception: The exception to categorize

    Returns:
        Category name as string
    """
    if isinstance(exception, HOST_ERRORS):
        return "host"
    elif isinstance(exception, VALIDATION_ERRORS):
        return "validation"
    elif isinstance(exception, AnalysisCancelled):
        return "cancelled"
    elif isinstance(exception, ReactAnnotationError):
        return "react_annotation"
    else:
        return "unknown"


def format_error_details(exception: ReactAnnotationError) -> dict:
    """
    Format exception details for structured error reporting.

    Args:
        exception: ReactAnnotationError instance

    Returns:
        Dictionary with formatted error details
    """
    details = {
        "error_type": exception.__class__.__name__,
        "message": exception.message,
        "category": categorize_exception(exception),
    }

    if getattr(exception, "file_path", None):
        details["file_path"] = exception.file_path
    if getattr(exception, "config_key", None):
        details["config_key"] = exception.config_key
    if getattr(exception, "dependency_name", None):
        details["dependency_name"] = exception.dependency_name
    if exception.details:
        details["additional_details"] = exception.details

    return details
