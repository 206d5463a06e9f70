"""Template discovery, parsing and caching for HTML responses.

Three ways of locating templates are supported:

* glob mode: every file matching ``parse_glob_pattern`` is parsed once and
  looked up by name (base name or stem) at render time;
* list mode: an explicit, ordered list of files is parsed per call and the
  last file (or a given name) is executed;
* view mode: a content file in ``template_dir`` is rendered on top of a
  fixed base layout.

Parsed template sets live in a ``TemplateCache`` owned by the renderer.
With ``debug`` enabled every call re-parses from disk.
"""

import dataclasses
import glob
import threading
from collections import OrderedDict
from collections.abc import Callable, Hashable, Mapping, Sequence
from pathlib import Path
from typing import Any

import jinja2
from jinja2 import BaseLoader, Environment, FileSystemLoader, Template
from jinja2.loaders import split_template_path
from pydantic import BaseModel

from response_renderer.config import RendererOptions
from response_renderer.exceptions import (
    ConfigurationException,
    TemplateException,
    TemplateFuncException,
    TemplateNotFoundException,
)
from response_renderer.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

FuncMap = Mapping[str, Callable[..., Any]]

DEFAULT_CACHE_ENTRIES = 64


class FileListLoader(BaseLoader):
    """Jinja2 loader serving an explicit list of files by base name.

    With ``aliases`` enabled each file is also reachable by its stem, so
    ``index.tmpl`` can be requested as ``index``. The first file claiming a
    name wins.
    """

    def __init__(self, paths: Sequence[Path], aliases: bool = False, encoding: str = "utf-8"):
        self.encoding = encoding
        self.primary_names: list[str] = []
        self._paths: dict[str, Path] = {}
        for path in paths:
            if path.name not in self._paths:
                self.primary_names.append(path.name)
            self._paths.setdefault(path.name, path)
            if aliases:
                self._paths.setdefault(path.stem, path)

    def get_source(self, environment: Environment, template: str) -> tuple[str, str, Callable[[], bool]]:
        path = self._paths.get(template)
        if path is None:
            raise jinja2.TemplateNotFound(template)
        try:
            mtime = path.stat().st_mtime
            source = path.read_text(encoding=self.encoding)
        except OSError as e:
            raise jinja2.TemplateNotFound(template) from e

        def uptodate() -> bool:
            try:
                return path.stat().st_mtime == mtime
            except OSError:
                return False

        return source, str(path), uptodate

    def list_templates(self) -> list[str]:
        return sorted(self._paths)


class ViewLoader(FileSystemLoader):
    """Filesystem loader that puts every view on top of one base layout.

    Files ending in ``view_extension`` are served as if they started with an
    ``extends`` tag naming ``layout``, so a view only defines blocks.
    """

    def __init__(self, searchpath: str | Path, layout: str, view_extension: str, encoding: str = "utf-8"):
        super().__init__(searchpath, encoding=encoding)
        self.layout = layout
        self.view_extension = view_extension

    def get_source(self, environment: Environment, template: str) -> tuple[str, str | None, Callable[[], bool] | None]:
        source, filename, uptodate = super().get_source(environment, template)
        if template.endswith(self.view_extension):
            extends = f'{environment.block_start_string} extends "{self.layout}" {environment.block_end_string}'
            source = extends + source
        return source, filename, uptodate


class TemplateSet:
    """A parsed group of templates sharing one Jinja2 environment."""

    def __init__(self, environment: Environment, names: Sequence[str]):
        self.environment = environment
        self.names = list(names)

    def get(self, name: str) -> Template:
        """Look up a template by name.

        Raises:
            TemplateNotFoundException: If the name is empty or unknown
        """
        if not name:
            raise TemplateNotFoundException("Template name is required")
        try:
            return self.environment.get_template(name)
        except jinja2.TemplateNotFound as e:
            raise TemplateNotFoundException(
                f"Template '{name}' not found",
                details={"template": name, "missing": e.name},
            ) from e
        except jinja2.TemplateError as e:
            raise TemplateException(f"Template '{name}' is invalid: {e}", details={"template": name}) from e

    def render(self, name: str, data: Any = None) -> str:
        """Execute the named template with ``data`` as context.

        Raises:
            TemplateNotFoundException: If the template, or one it includes, is missing
            TemplateException: If execution fails
        """
        template = self.get(name)
        try:
            return template.render(template_context(data))
        except jinja2.TemplateNotFound as e:
            raise TemplateNotFoundException(
                f"Template '{e.name}' referenced by '{name}' not found",
                details={"template": name, "missing": e.name},
            ) from e
        except Exception as e:
            raise TemplateException(
                f"Failed to render template '{name}': {e}",
                details={"template": name, "error_type": type(e).__name__},
            ) from e


class TemplateCache:
    """Parsed template sets keyed by lookup mode and inputs.

    Builds happen outside the lock; the finished set is swapped in, so
    readers never see a half-built set. At most ``max_entries`` sets are
    kept and the least recently used one is dropped first.
    """

    def __init__(self, max_entries: int = DEFAULT_CACHE_ENTRIES):
        self.max_entries = max_entries
        self._sets: OrderedDict[Hashable, TemplateSet] = OrderedDict()
        self._lock = threading.Lock()

    def get_or_build(
        self,
        key: Hashable,
        builder: Callable[[], TemplateSet],
        rebuild: bool = False,
    ) -> TemplateSet:
        """Return the cached set for ``key``, building it when missing.

        Args:
            key: Cache key
            builder: Callable producing a fresh TemplateSet
            rebuild: Ignore any cached set and build a new one

        Returns:
            Cached or freshly built TemplateSet
        """
        if not rebuild:
            with self._lock:
                cached = self._sets.get(key)
                if cached is not None:
                    self._sets.move_to_end(key)
            if cached is not None:
                log_with_context(
                    logger,
                    "debug",
                    "Template cache hit",
                    cache_key=str(key),
                    event_type="template_cache_hit",
                )
                return cached

        template_set = builder()
        with self._lock:
            self._sets[key] = template_set
            self._sets.move_to_end(key)
            while len(self._sets) > self.max_entries:
                evicted, _ = self._sets.popitem(last=False)
                log_with_context(
                    logger,
                    "debug",
                    "Template cache evicted",
                    cache_key=str(evicted),
                    event_type="template_cache_evict",
                )
        return template_set

    def clear(self) -> None:
        """Drop every cached template set."""
        with self._lock:
            self._sets.clear()
        log_with_context(logger, "debug", "Template cache cleared", event_type="template_cache_clear")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sets)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._sets


def template_context(data: Any) -> dict[str, Any]:
    """Turn render data into a Jinja2 context.

    Mappings are used as-is, pydantic models and dataclasses contribute
    their fields, and anything else is exposed as ``data``.
    """
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return dict(data)
    if isinstance(data, BaseModel):
        return {name: getattr(data, name) for name in type(data).model_fields}
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return {field.name: getattr(data, field.name) for field in dataclasses.fields(data)}
    return {"data": data}


def build_environment(loader: BaseLoader, options: RendererOptions, func_map: FuncMap) -> Environment:
    """Create a Jinja2 environment for ``loader`` with delimiters and functions.

    Raises:
        TemplateFuncException: If a function name is not an identifier or the value is not callable
        TemplateException: If the delimiters are rejected by Jinja2
    """
    for name, func in func_map.items():
        if not isinstance(name, str) or not name.isidentifier():
            raise TemplateFuncException(f"Invalid template function name: {name!r}", details={"name": repr(name)})
        if not callable(func):
            raise TemplateFuncException(
                f"Template function '{name}' is not callable",
                details={"name": name, "type": type(func).__name__},
            )

    try:
        environment = Environment(
            loader=loader,
            autoescape=True,
            auto_reload=False,
            variable_start_string=options.left_delim,
            variable_end_string=options.right_delim,
        )
    except (TypeError, ValueError, AssertionError) as e:
        raise TemplateException(
            f"Invalid template delimiters: {e}",
            details={"left_delim": options.left_delim, "right_delim": options.right_delim},
        ) from e

    environment.filters.update(func_map)
    environment.globals.update(func_map)
    return environment


def compile_set(environment: Environment, names: Sequence[str], mode: str) -> TemplateSet:
    """Parse every template in ``names`` up front.

    Raises:
        TemplateNotFoundException: If a listed template cannot be loaded
        TemplateException: If a template has a syntax error
    """
    for name in names:
        try:
            environment.get_template(name)
        except jinja2.TemplateNotFound as e:
            raise TemplateNotFoundException(f"Template '{e.name}' not found", details={"template": e.name}) from e
        except jinja2.TemplateSyntaxError as e:
            raise TemplateException(
                f"Syntax error in template '{name}' line {e.lineno}: {e.message}",
                details={"template": name, "line": e.lineno},
            ) from e

    log_with_context(
        logger,
        "debug",
        "Template set parsed",
        mode=mode,
        templates=list(names),
        event_type="template_parse",
    )
    return TemplateSet(environment, names)


class TemplateResolver:
    """Resolves and renders templates for the three lookup modes.

    Owns the template cache and the function map exposed to templates.
    """

    def __init__(self, options: RendererOptions, cache: TemplateCache | None = None):
        self.options = options
        self.cache = cache if cache is not None else TemplateCache(options.template_cache_size)
        self._func_map: dict[str, Callable[..., Any]] = {}

    @property
    def func_map(self) -> dict[str, Callable[..., Any]]:
        return dict(self._func_map)

    def set_func_map(self, func_map: FuncMap) -> None:
        """Replace the template function map and drop parsed templates."""
        self._func_map = dict(func_map)
        self.cache.clear()

    def render_glob(self, name: str, data: Any = None) -> str:
        """Render a template parsed from ``parse_glob_pattern``.

        Raises:
            ConfigurationException: If no glob pattern is configured
            TemplateNotFoundException: If the name is empty or unknown
        """
        pattern = self.options.parse_glob_pattern
        if not pattern:
            raise ConfigurationException("parse_glob_pattern is not configured")
        if not name:
            raise TemplateNotFoundException("Template name is required", details={"pattern": pattern})

        template_set = self.cache.get_or_build(
            ("glob", pattern),
            lambda: self._parse_glob(pattern),
            rebuild=self.options.debug,
        )
        return template_set.render(name, data)

    def render_files(self, files: Sequence[str | Path], data: Any = None, name: str | None = None) -> str:
        """Render one of an explicit list of template files.

        The template executed is ``name`` if given, otherwise the base name
        of the last file.

        Raises:
            TemplateNotFoundException: If the list is empty or a file is missing
        """
        paths = [Path(f) for f in files]
        if not paths:
            raise TemplateNotFoundException("At least one template file is required")

        key = ("files", tuple(str(p) for p in paths))
        template_set = self.cache.get_or_build(key, lambda: self._parse_files(paths), rebuild=self.options.debug)
        return template_set.render(name or paths[-1].name, data)

    def render_view(self, name: str, data: Any = None) -> str:
        """Render ``template_dir/<name><template_extension>`` inside the base layout.

        Raises:
            ConfigurationException: If no template directory is configured
            TemplateNotFoundException: If the view file does not exist
        """
        template_dir = self.options.template_dir
        if not template_dir:
            raise ConfigurationException("template_dir is not configured")
        if not name:
            raise TemplateNotFoundException("View name is required", details={"template_dir": template_dir})

        view = f"{name}{self.options.template_extension}"
        try:
            parts = split_template_path(view)
        except jinja2.TemplateNotFound as e:
            raise TemplateNotFoundException(f"View '{name}' not found", details={"view": name}) from e
        if not Path(template_dir, *parts).is_file():
            raise TemplateNotFoundException(
                f"View '{name}' not found in {template_dir}",
                details={"view": name, "template_dir": template_dir},
            )

        template_set = self.cache.get_or_build(
            ("view", template_dir),
            lambda: self._parse_view(template_dir),
            rebuild=self.options.debug,
        )
        return template_set.render(view, data)

    def _parse_glob(self, pattern: str) -> TemplateSet:
        paths = sorted(Path(p) for p in glob.glob(pattern) if Path(p).is_file())
        if not paths:
            raise TemplateNotFoundException(f"No templates match pattern '{pattern}'", details={"pattern": pattern})
        loader = FileListLoader(paths, aliases=True)
        environment = build_environment(loader, self.options, self._func_map)
        return compile_set(environment, loader.primary_names, mode="glob")

    def _parse_files(self, paths: Sequence[Path]) -> TemplateSet:
        missing = [str(p) for p in paths if not p.is_file()]
        if missing:
            raise TemplateNotFoundException(
                f"Template files not found: {', '.join(missing)}",
                details={"missing": missing},
            )
        loader = FileListLoader(paths)
        environment = build_environment(loader, self.options, self._func_map)
        return compile_set(environment, loader.primary_names, mode="files")

    def _parse_view(self, template_dir: str) -> TemplateSet:
        layout = f"{self.options.view_layout}{self.options.layout_extension}"
        loader = ViewLoader(template_dir, layout=layout, view_extension=self.options.template_extension)
        environment = build_environment(loader, self.options, self._func_map)
        return compile_set(environment, [layout], mode="view")
