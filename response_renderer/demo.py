"""Demo FastAPI application serving every renderer format.

Run with ``response-renderer-demo`` (or ``python -m response_renderer.demo``)
and browse to http://127.0.0.1:9000/.
"""

import io
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Query
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from response_renderer import __version__
from response_renderer.config import CONTENT_TYPE
from response_renderer.dependencies import get_renderer
from response_renderer.logging_config import get_logger, log_with_context, setup_logging
from response_renderer.middleware.error_handlers import register_error_handlers
from response_renderer.renderer import Renderer

logger = get_logger(__name__)

DEMO_TEMPLATES_DIR = Path(__file__).parent / "demo_templates"
SAMPLE_FILE = DEMO_TEMPLATES_DIR / "files" / "readme.txt"
TEMPLATE_FILES = [
    DEMO_TEMPLATES_DIR / "template" / "layout.tmpl",
    DEMO_TEMPLATES_DIR / "template" / "partial.tmpl",
    DEMO_TEMPLATES_DIR / "template" / "index.tmpl",
]


class DemoSettings(BaseSettings):
    """Settings for running the demo server."""

    host: str = Field(default="127.0.0.1", min_length=1, description="Bind address")
    port: int = Field(default=9000, ge=1, le=65535, description="Bind port")
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str | None = Field(default=None, description="JSON log file path")

    model_config = SettingsConfigDict(
        env_prefix="RENDERER_DEMO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class User(BaseModel):
    """Sample payload rendered by the demo routes."""

    name: str
    age: int


DEMO_USER = User(name="John Doe", age=30)


def create_renderer() -> Renderer:
    """Renderer wired to the bundled demo templates."""
    return Renderer(
        parse_glob_pattern=str(DEMO_TEMPLATES_DIR / "html" / "*.html"),
        template_dir=str(DEMO_TEMPLATES_DIR / "view"),
        func_map={"toUpper": str.upper},
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log startup and shutdown of the demo application."""
    log_with_context(
        logger,
        "info",
        "Starting renderer demo",
        version=__version__,
        event_type="app_startup",
    )
    try:
        yield
    finally:
        log_with_context(logger, "info", "Shutting down renderer demo", event_type="app_shutdown")


def create_app(renderer: Renderer | None = None) -> FastAPI:
    """Create the demo application.

    Args:
        renderer: Renderer to serve with, or None for one using the bundled templates

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="Response Renderer Demo",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.renderer = renderer if renderer is not None else create_renderer()

    register_error_handlers(app)

    @app.get("/")
    async def index(rnd: Renderer = Depends(get_renderer)):
        """Plain text welcome message."""
        return rnd.string(200, "Welcome to renderer!")

    @app.get("/no-content")
    async def no_content(rnd: Renderer = Depends(get_renderer)):
        return rnd.no_content()

    @app.get("/json")
    async def json_route(rnd: Renderer = Depends(get_renderer)):
        return rnd.json(200, DEMO_USER)

    @app.get("/jsonp")
    async def jsonp_route(
        rnd: Renderer = Depends(get_renderer),
        callback: str = Query(default="callback", description="JSONP callback name"),
    ):
        return rnd.jsonp(200, callback, DEMO_USER)

    @app.get("/xml")
    async def xml_route(rnd: Renderer = Depends(get_renderer)):
        return rnd.xml(200, DEMO_USER)

    @app.get("/yaml")
    async def yaml_route(rnd: Renderer = Depends(get_renderer)):
        return rnd.yaml(200, DEMO_USER)

    @app.get("/binary")
    async def binary_route(rnd: Renderer = Depends(get_renderer)):
        """Arbitrary binary data shown inline."""
        return rnd.binary(200, SAMPLE_FILE.read_bytes(), "readme.txt", True)

    @app.get("/file-inline")
    async def file_inline(rnd: Renderer = Depends(get_renderer)):
        return rnd.file_view(200, SAMPLE_FILE, "readme.txt")

    @app.get("/file-download")
    async def file_download(rnd: Renderer = Depends(get_renderer)):
        return rnd.file_download(200, SAMPLE_FILE, "readme.txt")

    @app.get("/file-reader")
    async def file_reader(rnd: Renderer = Depends(get_renderer)):
        """File streamed from an in-memory reader."""
        return rnd.file(200, io.BytesIO(SAMPLE_FILE.read_bytes()), "readme.txt", True)

    @app.get("/render")
    async def render_route(rnd: Renderer = Depends(get_renderer)):
        """Raw body with a caller supplied Content-Type."""
        return rnd.render(200, b"Send the message as text response", headers={CONTENT_TYPE: "text/plain"})

    @app.get("/template")
    async def template_route(rnd: Renderer = Depends(get_renderer)):
        """Layout, partial and page parsed from an explicit file list."""
        return rnd.template(200, TEMPLATE_FILES, DEMO_USER)

    @app.get("/html")
    async def html_route(rnd: Renderer = Depends(get_renderer)):
        """Template looked up by name among the glob-parsed files."""
        return rnd.html(200, "index", DEMO_USER)

    @app.get("/view/{name}")
    async def view_route(name: str, rnd: Renderer = Depends(get_renderer)):
        """View rendered inside the base layout."""
        return rnd.view(200, name, DEMO_USER)

    return app


def main() -> None:
    """Run the demo server with uvicorn."""
    import uvicorn

    load_dotenv()
    settings = DemoSettings()
    setup_logging(settings.log_level, settings.log_file)
    uvicorn.run(create_app(), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
