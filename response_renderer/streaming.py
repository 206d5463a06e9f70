"""Helpers for binary and file responses."""

import io
import mimetypes
from collections.abc import Iterator
from pathlib import Path
from typing import IO, Any
from urllib.parse import quote

from response_renderer.config import RendererOptions
from response_renderer.exceptions import RendererFileNotFoundException
from response_renderer.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024

# Built-in mime table; host mime.types files are not read
_mime_types = mimetypes.MimeTypes()
_mime_types.add_type("text/markdown", ".md")
_mime_types.add_type("text/markdown", ".markdown")


def content_disposition(filename: str, inline: bool) -> str:
    """Build a Content-Disposition header value.

    Args:
        filename: Name offered to the client for attachments
        inline: Display in the browser instead of downloading

    Returns:
        'inline', or 'attachment; filename="<name>"'
    """
    if inline:
        return "inline"
    try:
        filename.encode("latin-1")
    except UnicodeEncodeError:
        return f"attachment; filename*=utf-8''{quote(filename)}"
    escaped = filename.replace("\\", "\\\\").replace('"', '\\"')
    return f'attachment; filename="{escaped}"'


def guess_content_type(filename: str, options: RendererOptions, path: str | Path | None = None) -> str:
    """Guess the Content-Type for a file.

    ``path`` is tried first when given, then ``filename``. Text types get the
    charset suffix; unknown types fall back to the configured binary
    content type.
    """
    media_type = None
    for candidate in (path, filename):
        if candidate:
            media_type, _ = _mime_types.guess_type(str(candidate))
        if media_type is not None:
            break
    if media_type is None:
        return options.content_binary
    if media_type.startswith("text/"):
        return options.content_type(media_type)
    return media_type


def as_reader(source: Any) -> IO[Any]:
    """Accept raw bytes/str in place of a file-like reader."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(source))
    if isinstance(source, str):
        return io.StringIO(source)
    return source


def iter_reader(reader: IO[Any], charset: str, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield a reader's content in chunks, encoding str chunks with ``charset``."""
    while True:
        chunk = reader.read(chunk_size)
        if not chunk:
            break
        if isinstance(chunk, str):
            chunk = chunk.encode(charset or "utf-8")
        yield chunk


def iter_file(handle: IO[bytes], chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield a file's content and close it once streaming ends."""
    with handle:
        yield from iter_reader(handle, "utf-8", chunk_size)


def open_file(path: str | Path) -> IO[bytes]:
    """Open a file for streaming.

    Raises:
        RendererFileNotFoundException: If the file cannot be opened
    """
    try:
        return open(path, "rb")
    except OSError as e:
        log_with_context(
            logger,
            "warning",
            "File could not be opened",
            path=str(path),
            error=str(e),
            event_type="file_open_error",
        )
        raise RendererFileNotFoundException(f"File not found: {path}", details={"path": str(path)}) from e
