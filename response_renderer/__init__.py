"""Response Renderer: multi-format HTTP responses for FastAPI/Starlette handlers."""

from importlib.metadata import PackageNotFoundError, version

from response_renderer.config import RendererOptions
from response_renderer.renderer import Renderer

try:
    __version__ = version("response-renderer")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = ["Renderer", "RendererOptions", "__version__"]
