"""Shared fixtures."""
import httpx
import pytest

from gateway.integrations.registry import default_registry
from gateway.service import build_gateway

from tests.helpers import RecordingHost, make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def host():
    return RecordingHost()


@pytest.fixture
def gateway(settings, host):
    def refuse(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected outbound call: {request.method} {request.url}")

    return build_gateway(settings, host=host, transport=httpx.MockTransport(refuse))
