"""FastAPI dependencies for dependency injection."""

from fastapi import Request

from response_renderer.renderer import Renderer


async def get_renderer(request: Request) -> Renderer:
    """
    Get the shared Renderer from app state.

    Args:
        request: The FastAPI request object.

    Returns:
        The Renderer stored on ``app.state.renderer``.

    Raises:
        RuntimeError: If no renderer has been attached to the app.
    """
    renderer: Renderer | None = getattr(request.app.state, "renderer", None)

    if renderer is None:
        raise RuntimeError("Renderer not initialized. Set app.state.renderer at startup.")

    return renderer
