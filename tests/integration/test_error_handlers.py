"""Integration tests for renderer exception handling."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from response_renderer.exceptions import RendererFileNotFoundException, SerializationException
from response_renderer.middleware.error_handlers import register_error_handlers
from response_renderer.renderer import Renderer


def create_test_app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)
    renderer = Renderer()

    @app.get("/missing-file")
    async def missing_file():
        return renderer.file_download(200, "/nonexistent/report.pdf", "report.pdf")

    @app.get("/bad-json")
    async def bad_json():
        return renderer.json(200, {"value": float("nan")})

    return app


def test_file_not_found_error_response():
    client = TestClient(create_test_app())

    response = client.get("/missing-file")

    assert response.status_code == RendererFileNotFoundException().status_code
    error = response.json()["error"]
    assert error["code"] == "FILE_NOT_FOUND"
    assert error["details"]["path"] == "/nonexistent/report.pdf"


def test_serialization_error_response():
    client = TestClient(create_test_app())

    response = client.get("/bad-json")

    assert response.status_code == SerializationException("x").status_code
    assert response.json()["error"]["code"] == "SERIALIZATION_ERROR"
