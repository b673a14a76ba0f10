"""
Pytest Configuration and Shared Fixtures.

Provides settings, a fake ERP server on top of httpx.MockTransport and
ready-made clients for service tests.
"""

import json
from typing import Any, Callable, Union

import httpx
import pytest

from hr_mobile.config import Settings
from hr_mobile.frappe import FrappeClient

ERP_HOST = "https://erp.test"
RESOURCE = "/api/resource"
METHOD = "/api/method"

Responder = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


def frappe_data(payload: Any, status: int = 200) -> httpx.Response:
    """Resource-style response."""
    return httpx.Response(status, json={"data": payload})


def frappe_message(payload: Any, status: int = 200) -> httpx.Response:
    """Method-style response."""
    return httpx.Response(status, json={"message": payload})


def frappe_error(status: int = 417, exc_type: str = "ValidationError", **extra) -> httpx.Response:
    return httpx.Response(status, json={"exc_type": exc_type, **extra})


class FakeERP:
    """
    Minimal Frappe server.

    Routes are keyed by HTTP method and decoded path. Several responses
    for one route are served in order; the last one repeats.
    Unrouted requests get a 404.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[Responder]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, *responses: Responder):
        self.routes[(method.upper(), path)] = list(responses)
        return self

    def resource(self, method: str, doctype: str, *responses: Responder, name: str = None):
        path = f"{RESOURCE}/{doctype}" + (f"/{name}" if name is not None else "")
        return self.on(method, path, *responses)

    def method(self, http_method: str, method: str, *responses: Responder):
        return self.on(http_method, f"{METHOD}/{method}", *responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return frappe_error(404, "DoesNotExistError", message="Not found")
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(responder) and not isinstance(responder, httpx.Response):
            return responder(request)
        return responder

    def paths(self) -> list[tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    @staticmethod
    def params(request: httpx.Request) -> dict[str, Any]:
        """Query parameters with JSON-encoded values decoded."""
        decoded = {}
        for key, value in request.url.params.items():
            if key in ("filters", "fields"):
                decoded[key] = json.loads(value)
            else:
                decoded[key] = value
        return decoded

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content or b"null")


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Fully configured settings that ignore the local .env file."""
    return Settings(
        _env_file=None,
        erp_url_resource=f"{ERP_HOST}{RESOURCE}/",
        erp_api_key="key123",
        erp_api_secret="secret456",
        storage_path=tmp_path / "storage.json",
        microsoft_client_id="client-id",
    )


@pytest.fixture
def unconfigured_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        erp_url_resource="",
        erp_api_key="",
        erp_api_secret="",
        storage_path=tmp_path / "storage.json",
    )


# =============================================================================
# ERP Fixtures
# =============================================================================


@pytest.fixture
def erp() -> FakeERP:
    return FakeERP()


@pytest.fixture
async def client(settings, erp):
    """FrappeClient wired to the fake ERP."""
    frappe_client = FrappeClient(settings, transport=httpx.MockTransport(erp))
    yield frappe_client
    await frappe_client.close()
