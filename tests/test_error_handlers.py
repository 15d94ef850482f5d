import logging
import uuid

from fastapi import FastAPI
from fastapi.testclient import TestClient

from lms_core.core.error_handlers import register_exception_handlers
from lms_core.core.exceptions import (
    BadRequestError, ModuleNotFound, ProfessorNotFound, TenantConfigurationError,
)
from lms_core.core.logging import setup_logging


def make_client():
    app = FastAPI()
    register_exception_handlers(app)
    module_id = uuid.UUID("00000000-0000-0000-0000-000000000001")

    @app.get("/module")
    async def missing_module():
        raise ModuleNotFound(module_id)

    @app.get("/professors")
    async def missing_professors():
        raise ProfessorNotFound([module_id])

    @app.get("/paging")
    async def bad_paging():
        raise BadRequestError("Invalid pagination parameters")

    @app.get("/tenant")
    async def misconfigured():
        raise TenantConfigurationError("No tenant database configured for school: School C")

    @app.get("/boom")
    async def boom():
        raise ValueError("unexpected")

    return TestClient(app, raise_server_exceptions=False)


def test_not_found_errors():
    client = make_client()

    r = client.get("/module")
    assert r.status_code == 404
    assert r.json() == {
        "error": "Module not found with id: 00000000-0000-0000-0000-000000000001",
        "type": "ModuleNotFound",
    }

    r = client.get("/professors")
    assert r.status_code == 404
    assert r.json()["error"].startswith("Professor not found or not in your school")


def test_bad_request_and_configuration_errors():
    client = make_client()

    assert client.get("/paging").status_code == 400

    r = client.get("/tenant")
    assert r.status_code == 500
    assert r.json()["error"]["error"] == "Configuration Error"
    assert r.json()["type"] == "TenantConfigurationError"


def test_unexpected_errors_are_masked():
    r = make_client().get("/boom")
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error", "type": "InternalError"}


def test_setup_logging_configures_root(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(kw))

    setup_logging("warning")

    [kwargs] = calls
    assert kwargs["level"] == "WARNING"
    assert "%(name)s" in kwargs["format"]
