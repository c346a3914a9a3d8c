"""Shared test doubles for the AEM server tests."""

import json
from urllib.parse import parse_qsl

import httpx
import pytest

from aem_server.mcp_server.auth import AEMSession
from aem_server.mcp_server.client import AEMClient
from aem_server.mcp_server.config import Config

BASE_URL = "https://author.example.com"
IMS_PATH = "/ims/token/v3"


class FakeAEM:
    """In-memory stand-in for AEM and IMS, served through httpx.MockTransport."""

    def __init__(self):
        self.routes = {}
        self.requests: list[httpx.Request] = []

    def add(self, method, path, status=200, json_body=None, text=None, headers=None):
        """Register a canned response for ``method path``."""
        self.routes[(method, path)] = (status, json_body, text, headers)

    def add_handler(self, method, path, handler):
        """Register a callable producing the response for ``method path``."""
        self.routes[(method, path)] = handler

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, text="Not Found")
        if callable(route):
            return await route(request)
        status, json_body, text, headers = route
        if json_body is not None:
            return httpx.Response(status, json=json_body, headers=headers)
        return httpx.Response(status, text=text or "", headers=headers)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @staticmethod
    def form_pairs(request: httpx.Request) -> list[tuple[str, str]]:
        return parse_qsl(request.content.decode(), keep_blank_values=True)

    @staticmethod
    def json_payload(request: httpx.Request):
        return json.loads(request.content)

    def calls(self, method=None, path=None) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if (method is None or request.method == method)
            and (path is None or request.url.path == path)
        ]


def make_config(**overrides) -> Config:
    settings = {
        "base_url": BASE_URL,
        "auth_type": "basic",
        "username": "admin",
        "password": "admin",
    }
    settings.update(overrides)
    return Config(_env_file=None, **settings)


@pytest.fixture
def config_factory():
    return make_config


@pytest.fixture
def fake_aem():
    return FakeAEM()


@pytest.fixture
def aem_client(fake_aem):
    session = AEMSession(make_config(), transport=fake_aem.transport)
    return AEMClient(session)
