"""Renderer façade: one method per response format.

Each method encodes its body first and only then builds the response, so a
failure raises a ``RendererException`` without producing a half-written
response. Handlers return the ``Response`` they get back.

Example:
    renderer = Renderer(parse_glob_pattern="templates/*.html")

    @app.get("/user")
    async def user():
        return renderer.json(200, {"name": "John Doe", "age": 30})
"""

from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import IO, Any

from fastapi.responses import Response, StreamingResponse

from response_renderer.config import CONTENT_DISPOSITION, CONTENT_TYPE, RendererOptions
from response_renderer.exceptions import ConfigurationException, RendererException, SerializationException
from response_renderer.logging_config import get_logger, log_with_context
from response_renderer.serializers import marshal_json, marshal_xml, marshal_yaml, wrap_jsonp
from response_renderer.streaming import (
    as_reader,
    content_disposition,
    guess_content_type,
    iter_file,
    iter_reader,
    open_file,
)
from response_renderer.templates import TemplateResolver

logger = get_logger(__name__)


class Renderer:
    """Builds HTTP responses in text, JSON, JSONP, XML, YAML, HTML and file formats."""

    def __init__(
        self,
        options: RendererOptions | None = None,
        func_map: Mapping[str, Callable[..., Any]] | None = None,
        **overrides: Any,
    ):
        """Initialize renderer.

        Args:
            options: Options instance, or None to build one from defaults/environment
            func_map: Functions exposed to templates as filters and globals
            **overrides: Option fields overriding ``options``

        Raises:
            ConfigurationException: If an override does not name an option field
        """
        unknown = sorted(set(overrides) - set(RendererOptions.model_fields))
        if unknown:
            raise ConfigurationException(
                f"Unknown renderer options: {', '.join(unknown)}",
                details={"unknown": unknown},
            )
        if options is None:
            options = RendererOptions(**overrides)
        elif overrides:
            options = options.model_copy(update=overrides)
        self.options = options
        self.templates = TemplateResolver(options)
        if func_map:
            self.templates.set_func_map(func_map)

    # Setters

    def set_charset(self, charset: str) -> "Renderer":
        self.options.charset = charset
        return self

    def set_disable_charset(self, disable: bool) -> "Renderer":
        self.options.disable_charset = disable
        return self

    def set_json_indent(self, indent: bool) -> "Renderer":
        self.options.json_indent = indent
        return self

    def set_xml_indent(self, indent: bool) -> "Renderer":
        self.options.xml_indent = indent
        return self

    def set_escape_html(self, escape: bool) -> "Renderer":
        """Escape (default) or keep '<', '>' and '&' in JSON output."""
        self.options.unescape_html = not escape
        return self

    def set_delims(self, left: str, right: str) -> "Renderer":
        """Set template variable delimiters; parsed templates are dropped."""
        self.options.left_delim = left
        self.options.right_delim = right
        self.templates.cache.clear()
        return self

    def set_func_map(self, func_map: Mapping[str, Callable[..., Any]]) -> "Renderer":
        """Replace the functions available to templates; parsed templates are dropped."""
        self.templates.set_func_map(func_map)
        return self

    # Plain responses

    def no_content(self) -> Response:
        """Empty 204 response."""
        return Response(status_code=204)

    def render(self, status: int, body: bytes | str, headers: Mapping[str, str] | None = None) -> Response:
        """Send ``body`` as-is with caller supplied headers."""
        content = body if isinstance(body, bytes) else self._encode(body)
        return Response(content=content, status_code=status, headers=dict(headers or {}))

    def string(self, status: int, text: str) -> Response:
        return self._text_response(status, text, self.options.content_text)

    def json(self, status: int, value: Any) -> Response:
        """Serialize ``value`` as JSON, prefixed with ``json_prefix``."""
        body = marshal_json(value, indent=self.options.json_indent, unescape_html=self.options.unescape_html)
        return self._text_response(status, self.options.json_prefix + body, self.options.content_json)

    def jsonp(self, status: int, callback: str, value: Any) -> Response:
        """Serialize ``value`` as JSON wrapped in ``callback(...);``.

        Raises:
            CallbackMissingException: If ``callback`` is empty
        """
        body = marshal_json(value, indent=self.options.json_indent, unescape_html=self.options.unescape_html)
        return self._text_response(status, wrap_jsonp(callback, body), self.options.content_jsonp)

    def xml(self, status: int, value: Any, root: str | None = None) -> Response:
        """Serialize ``value`` as XML, prefixed with the XML declaration or ``xml_prefix``.

        Args:
            status: HTTP status code
            value: Mapping, sequence, pydantic model or dataclass
            root: Root element name (defaults to the value's class name or 'response')
        """
        body = marshal_xml(value, root=root, indent=self.options.xml_indent)
        return self._text_response(status, self.options.xml_header() + body, self.options.content_xml)

    def yaml(self, status: int, value: Any) -> Response:
        body = marshal_yaml(value)
        return self._text_response(status, body, self.options.content_yaml)

    # HTML

    def html_string(self, status: int, html: str) -> Response:
        return self._text_response(status, html, self.options.content_html)

    def html(self, status: int, name: str, data: Any = None) -> Response:
        """Render a template parsed from ``parse_glob_pattern`` by name."""
        try:
            body = self.templates.render_glob(name, data)
        except RendererException as e:
            self._log_template_failure("html", name, e)
            raise
        return self._text_response(status, body, self.options.content_html)

    def template(
        self,
        status: int,
        files: Sequence[str | Path],
        data: Any = None,
        name: str | None = None,
    ) -> Response:
        """Render from an explicit list of layout/content files.

        The executed template is ``name`` if given, else the last file's base name.
        """
        try:
            body = self.templates.render_files(files, data, name=name)
        except RendererException as e:
            self._log_template_failure("template", name or (str(files[-1]) if files else ""), e)
            raise
        return self._text_response(status, body, self.options.content_html)

    def view(self, status: int, name: str, data: Any = None) -> Response:
        """Render ``template_dir/<name><template_extension>`` inside the base layout."""
        try:
            body = self.templates.render_view(name, data)
        except RendererException as e:
            self._log_template_failure("view", name, e)
            raise
        return self._text_response(status, body, self.options.content_html)

    # Binary and files

    def binary(self, status: int, reader: IO[Any] | bytes, filename: str, inline: bool) -> StreamingResponse:
        """Stream arbitrary binary data from ``reader``."""
        return self._stream(status, as_reader(reader), self.options.content_binary, filename, inline)

    def file(self, status: int, reader: IO[Any] | bytes, filename: str, inline: bool) -> StreamingResponse:
        """Stream a file from ``reader``, with Content-Type guessed from ``filename``."""
        content_type = guess_content_type(filename, self.options)
        return self._stream(status, as_reader(reader), content_type, filename, inline)

    def file_view(self, status: int, path: str | Path, filename: str) -> StreamingResponse:
        """Open ``path`` and serve it inline.

        Raises:
            RendererFileNotFoundException: If the file cannot be opened
        """
        return self._serve_path(status, path, filename, inline=True)

    def file_download(self, status: int, path: str | Path, filename: str) -> StreamingResponse:
        """Open ``path`` and serve it as an attachment named ``filename``.

        Raises:
            RendererFileNotFoundException: If the file cannot be opened
        """
        return self._serve_path(status, path, filename, inline=False)

    def _serve_path(self, status: int, path: str | Path, filename: str, inline: bool) -> StreamingResponse:
        handle = open_file(path)
        headers = {
            CONTENT_TYPE: guess_content_type(filename, self.options, path=path),
            CONTENT_DISPOSITION: content_disposition(filename, inline),
        }
        return StreamingResponse(iter_file(handle), status_code=status, headers=headers)

    def _stream(self, status: int, reader: IO[Any], content_type: str, filename: str, inline: bool) -> StreamingResponse:
        headers = {
            CONTENT_TYPE: content_type,
            CONTENT_DISPOSITION: content_disposition(filename, inline),
        }
        return StreamingResponse(iter_reader(reader, self.options.charset), status_code=status, headers=headers)

    def _text_response(self, status: int, text: str, base_content_type: str) -> Response:
        # Content-Type goes in headers; media_type would make Starlette add its own charset
        content = self._encode(text)
        headers = {CONTENT_TYPE: self.options.content_type(base_content_type)}
        return Response(content=content, status_code=status, headers=headers)

    def _encode(self, text: str) -> bytes:
        charset = self.options.charset or "utf-8"
        try:
            return text.encode(charset)
        except LookupError as e:
            raise ConfigurationException(f"Unknown charset: {charset}", details={"charset": charset}) from e
        except UnicodeEncodeError as e:
            raise SerializationException(
                f"Body cannot be encoded as {charset}: {e.reason}",
                details={"charset": charset},
            ) from e

    def _log_template_failure(self, method: str, template: str, exc: RendererException) -> None:
        log_with_context(
            logger,
            "warning",
            "Template render failed",
            method=method,
            template=template,
            error_code=exc.code.value,
            error=exc.message,
            event_type="template_render_error",
        )
