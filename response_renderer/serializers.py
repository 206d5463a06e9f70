"""Body encoders for the structured formats (JSON, JSONP, XML, YAML)."""

import dataclasses
import json
import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any

import yaml
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from response_renderer.exceptions import CallbackMissingException, SerializationException

DEFAULT_XML_ROOT = "response"

_XML_TAG_RE = re.compile(r"[^0-9A-Za-z_.\-]")
_XML_INVALID_CHAR_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

# Characters escaped in JSON output unless unescape_html is set
_HTML_SAFE_JSON = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


def to_jsonable(value: Any) -> Any:
    """Convert models, dataclasses and other rich values to plain data.

    Raises:
        SerializationException: If the value has no JSON-compatible form
    """
    try:
        return jsonable_encoder(value)
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationException(
            f"Cannot encode value of type {type(value).__name__}",
            details={"type": type(value).__name__, "error": str(e)},
        ) from e


def marshal_json(value: Any, indent: bool = False, unescape_html: bool = False) -> str:
    """Encode a value as JSON.

    Args:
        value: Value to encode
        indent: Indent nested structures by one space per level
        unescape_html: Keep '<', '>' and '&' as literal characters

    Returns:
        JSON text

    Raises:
        SerializationException: If the value cannot be encoded
    """
    data = to_jsonable(value)
    try:
        if indent:
            body = json.dumps(data, indent=1, ensure_ascii=False, allow_nan=False)
        else:
            body = json.dumps(data, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationException(f"JSON encoding failed: {e}", details={"format": "json"}) from e

    if not unescape_html:
        body = body.translate(_HTML_SAFE_JSON)
    return body


def wrap_jsonp(callback: str, body: str) -> str:
    """Wrap a JSON body in a JSONP callback invocation.

    Raises:
        CallbackMissingException: If the callback name is empty
    """
    if not callback or not callback.strip():
        raise CallbackMissingException()
    return f"{callback}({body});"


def marshal_xml(value: Any, root: str | None = None, indent: bool = False) -> str:
    """Encode a value as an XML document body (without declaration).

    The root element is ``root`` when given, otherwise the class name of a
    pydantic model or dataclass value, otherwise 'response'. Mapping keys
    become child elements and sequence items become ``<item>`` elements.

    Raises:
        SerializationException: If the value cannot be encoded
    """
    tag = _sanitize_xml_tag(root or _root_tag(value))
    data = to_jsonable(value)
    element = _build_element(tag, data)
    if indent:
        ET.indent(element, space=" ")
    try:
        return ET.tostring(element, encoding="unicode")
    except (TypeError, ValueError) as e:
        raise SerializationException(f"XML encoding failed: {e}", details={"format": "xml"}) from e


def marshal_yaml(value: Any) -> str:
    """Encode a value as block-style YAML, keeping key order.

    Field names of pydantic models and dataclasses are lowercased, so
    ``User(Name=..., Age=...)`` becomes ``name: ...`` / ``age: ...``.
    Mapping keys are written as given.

    Raises:
        SerializationException: If the value cannot be encoded
    """
    try:
        fields = _lowercase_fields(value)
    except RecursionError as e:
        raise SerializationException(
            "YAML encoding failed: value is self-referencing",
            details={"format": "yaml"},
        ) from e
    data = to_jsonable(fields)
    try:
        return yaml.safe_dump(
            data,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )
    except yaml.YAMLError as e:
        raise SerializationException(f"YAML encoding failed: {e}", details={"format": "yaml"}) from e


def _lowercase_fields(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return {name.lower(): _lowercase_fields(getattr(value, name)) for name in type(value).model_fields}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name.lower(): _lowercase_fields(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {key: _lowercase_fields(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_lowercase_fields(item) for item in value]
    return value


def _root_tag(value: Any) -> str:
    if isinstance(value, BaseModel) or (dataclasses.is_dataclass(value) and not isinstance(value, type)):
        return type(value).__name__
    return DEFAULT_XML_ROOT


def _build_element(tag: str, value: Any) -> ET.Element:
    element = ET.Element(tag)
    if isinstance(value, dict):
        for key, item in value.items():
            element.append(_build_element(_sanitize_xml_tag(str(key)), item))
    elif isinstance(value, (list, tuple)):
        for item in value:
            element.append(_build_element("item", item))
    elif value is None:
        pass
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    else:
        element.text = _sanitize_xml_text(str(value))
    return element


def _sanitize_xml_tag(candidate: str) -> str:
    sanitized = _XML_TAG_RE.sub("_", candidate.strip())
    if not sanitized:
        return "item"
    if not (sanitized[0].isalpha() or sanitized[0] == "_"):
        sanitized = f"_{sanitized}"
    return sanitized


def _sanitize_xml_text(value: str) -> str:
    """Replace control characters that are not permitted in XML documents."""
    return _XML_INVALID_CHAR_RE.sub(lambda match: f"\\x{ord(match.group(0)):02x}", value)
