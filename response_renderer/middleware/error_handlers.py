"""Exception handlers for the application."""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from response_renderer.exceptions import RendererException
from response_renderer.logging_config import get_logger, log_with_context

logger = get_logger(__name__)


async def renderer_exception_handler(request: Request, exc: RendererException) -> JSONResponse:
    """Handle renderer exceptions with proper HTTP status codes.

    Returns structured JSON error responses with status code, error code,
    message, and optional details for client-side error handling.
    """
    log_with_context(
        logger,
        "warning",
        "Renderer error",
        error_code=exc.code.value,
        error_message=exc.message,
        status_code=exc.status_code,
        method=request.method,
        url=str(request.url),
        event_type="renderer_error",
    )

    error_content: dict[str, Any] = {"code": exc.code.value, "message": exc.message, "details": exc.details}

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": error_content},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register renderer exception handlers with the application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(RendererException, renderer_exception_handler)
