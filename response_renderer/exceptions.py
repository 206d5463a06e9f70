"""Custom exceptions for Response Renderer with HTTP status codes."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error responses."""

    # Generic errors
    RENDERER_ERROR = "RENDERER_ERROR"

    # Body serialization errors
    SERIALIZATION_ERROR = "SERIALIZATION_ERROR"
    CALLBACK_MISSING = "CALLBACK_MISSING"

    # Template errors
    TEMPLATE_ERROR = "TEMPLATE_ERROR"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    TEMPLATE_FUNC_INVALID = "TEMPLATE_FUNC_INVALID"

    # File errors
    FILE_NOT_FOUND = "FILE_NOT_FOUND"

    # Configuration errors
    CONFIG_ERROR = "CONFIG_ERROR"


class RendererException(Exception):
    """Base exception for renderer errors with HTTP status code support.

    Every failure a render method can hit is raised as a subclass of this
    type, so handlers can catch one exception and decide how to respond.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RENDERER_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize renderer exception.

        Args:
            message: Human-readable error message
            code: Error code from ErrorCode enum
            status_code: HTTP status code (default 500)
            details: Additional error context/details
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class SerializationException(RendererException):
    """A value could not be encoded as JSON, XML or YAML."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.SERIALIZATION_ERROR,
            status_code=500,
            details=details,
        )


class CallbackMissingException(RendererException):
    """JSONP was requested without a callback name."""

    def __init__(self, message: str = "JSONP callback name is required", details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.CALLBACK_MISSING,
            status_code=400,
            details=details,
        )


class TemplateException(RendererException):
    """Template parsing or execution failed."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TEMPLATE_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, status_code, details)


class TemplateNotFoundException(TemplateException):
    """Requested template name or file does not exist."""

    def __init__(self, message: str = "Template not found", details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.TEMPLATE_NOT_FOUND,
            status_code=500,
            details=details,
        )


class TemplateFuncException(TemplateException):
    """Template function map contains an invalid entry."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.TEMPLATE_FUNC_INVALID,
            status_code=500,
            details=details,
        )


class RendererFileNotFoundException(RendererException):
    """File to be served could not be opened."""

    def __init__(self, message: str = "File not found", details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.FILE_NOT_FOUND,
            status_code=404,
            details=details,
        )


class ConfigurationException(RendererException):
    """Renderer options are missing a value required by the called method."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.CONFIG_ERROR,
            status_code=500,
            details=details,
        )
