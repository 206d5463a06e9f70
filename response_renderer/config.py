from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Header names
CONTENT_TYPE = "Content-Type"
CONTENT_DISPOSITION = "Content-Disposition"

# Base content types, written without the charset suffix
CONTENT_TEXT = "text/plain"
CONTENT_JSON = "application/json"
CONTENT_JSONP = "application/json"
CONTENT_XML = "application/xml"
CONTENT_YAML = "application/x-yaml"
CONTENT_HTML = "text/html"
CONTENT_BINARY = "application/octet-stream"

DEFAULT_CHARSET = "UTF-8"
XML_DECLARATION = '<?xml version="1.0" encoding="{charset}"?>\n'


class RendererOptions(BaseSettings):
    """Formatting options shared by every render call.

    Values can be passed as keyword arguments or read from ``RENDERER_*``
    environment variables (and a ``.env`` file). Fields are not cross-checked
    here: a missing template directory or glob pattern is reported by the
    render method that needs it.

    Assignments are validated, so the Renderer setters go through the same
    type coercion as construction.
    """

    charset: str = Field(default=DEFAULT_CHARSET, description="Charset appended to text content types")
    disable_charset: bool = Field(default=False, description="Omit the '; charset=' suffix")

    content_text: str = CONTENT_TEXT
    content_json: str = CONTENT_JSON
    content_jsonp: str = CONTENT_JSONP
    content_xml: str = CONTENT_XML
    content_yaml: str = CONTENT_YAML
    content_html: str = CONTENT_HTML
    content_binary: str = CONTENT_BINARY

    json_indent: bool = Field(default=False, description="Indent JSON bodies")
    json_prefix: str = Field(default="", description="String written before JSON bodies")
    xml_indent: bool = Field(default=False, description="Indent XML bodies")
    xml_prefix: str | None = Field(
        default=None,
        description="String written before XML bodies; None writes a declaration naming the charset",
    )
    unescape_html: bool = Field(default=False, description="Keep <, > and & literal in JSON output")

    debug: bool = Field(default=False, description="Re-parse templates on every call")
    template_cache_size: int = Field(default=64, ge=1, description="Parsed template sets kept per renderer")

    left_delim: str = Field(default="{{", description="Template variable start delimiter")
    right_delim: str = Field(default="}}", description="Template variable end delimiter")
    parse_glob_pattern: str = Field(default="", description="Glob selecting templates for html()")
    template_dir: str = Field(default="", description="Directory holding layouts and views for view()")
    view_layout: str = Field(default="base", description="Layout name that every view extends")
    layout_extension: str = ".lout"
    template_extension: str = ".tpl"

    model_config = SettingsConfigDict(
        env_prefix="RENDERER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    @field_validator("charset", mode="after")
    @classmethod
    def strip_charset(cls, v: str) -> str:
        """Drop surrounding whitespace from the charset name."""
        return v.strip()

    def content_type(self, base: str) -> str:
        """Build a Content-Type header value for ``base``.

        Args:
            base: Content type without parameters (e.g. 'application/json')

        Returns:
            ``base`` with '; charset=<charset>' appended unless disabled
        """
        if self.disable_charset or not self.charset:
            return base
        return f"{base}; charset={self.charset}"

    def xml_header(self) -> str:
        """Text written before XML bodies.

        ``xml_prefix`` when set (an empty string writes nothing), otherwise an
        XML declaration whose encoding matches ``charset``.
        """
        if self.xml_prefix is not None:
            return self.xml_prefix
        return XML_DECLARATION.format(charset=self.charset or DEFAULT_CHARSET)


# Singleton options instance (cached for performance)
_options_instance: RendererOptions | None = None


def get_options() -> RendererOptions:
    """Get singleton RendererOptions instance read from the environment.

    Returns:
        Cached RendererOptions instance
    """
    global _options_instance
    if _options_instance is None:
        _options_instance = RendererOptions()
    return _options_instance
