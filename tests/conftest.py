"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from response_renderer.renderer import Renderer

GLOB_HEADER = "<head><title>Header</title></head>"
GLOB_INDEX = '<html>{% include "header" %}home</html>'

LAYOUT = (
    "<html><head><title>{% block title %}{% endblock %}</title></head>"
    "<body>{% block content %}{% endblock %}</body></html>"
)
PAGE = (
    '{% extends "layout.tmpl" %}{% block title %}An example layout{% endblock %}'
    "{% block content %}<h1>Hello {{ name | toUpper }}</h1>{% endblock %}"
)

VIEW_BASE = "<html><head><title>{% block title %} {% endblock %}</title></head><body>{% block content %}{% endblock %}</body></html>"
VIEW_HOME = (
    "{% block title %}Home{% endblock %}{% block content %}<h3>Home page</h3>"
    '<ul><li><a href="/">Home</a></li><li><a href="/about">About Me</a></li></ul>'
    "<p>Lorem ipsum dolor sit amet</p>{% endblock %}"
)
VIEW_ABOUT = (
    "{% block title %}About Me{% endblock %}{% block content %}<h2>This is About me page.</h2>"
    '<p><a href="/">Home</a></p>{% endblock %}'
)


class User(BaseModel):
    """Payload with capitalized field names."""

    Name: str
    Age: int


class Person(BaseModel):
    """Payload with lowercase field names."""

    name: str
    age: int


@pytest.fixture
def user() -> User:
    return User(Name="John Doe", Age=30)


@pytest.fixture
def person() -> Person:
    return Person(name="John Doe", age=30)


@pytest.fixture
def renderer() -> Renderer:
    """Renderer with default options."""
    return Renderer()


@pytest.fixture
def glob_dir(tmp_path: Path) -> Path:
    """Directory with a header fragment and a page including it."""
    directory = tmp_path / "htmls"
    directory.mkdir()
    (directory / "header.tmpl").write_text(GLOB_HEADER, encoding="utf-8")
    (directory / "index.tmpl").write_text(GLOB_INDEX, encoding="utf-8")
    return directory


@pytest.fixture
def template_files(tmp_path: Path) -> list[str]:
    """Layout and page files for list-mode rendering, layout first."""
    directory = tmp_path / "templates"
    directory.mkdir()
    layout = directory / "layout.tmpl"
    page = directory / "index.tmpl"
    layout.write_text(LAYOUT, encoding="utf-8")
    page.write_text(PAGE, encoding="utf-8")
    return [str(layout), str(page)]


@pytest.fixture
def view_dir(tmp_path: Path) -> Path:
    """Directory with a base layout and two views."""
    directory = tmp_path / "view"
    directory.mkdir()
    (directory / "base.lout").write_text(VIEW_BASE, encoding="utf-8")
    (directory / "home.tpl").write_text(VIEW_HOME, encoding="utf-8")
    (directory / "about.tpl").write_text(VIEW_ABOUT, encoding="utf-8")
    return directory


@pytest.fixture
def serve() -> Callable:
    """Send a renderer response through a FastAPI app and return the client response.

    Needed for streaming responses, whose body only exists once sent.
    """

    def _serve(handler: Callable):
        app = FastAPI()
        app.add_api_route("/", handler, methods=["GET"])
        with TestClient(app) as client:
            return client.get("/")

    return _serve
