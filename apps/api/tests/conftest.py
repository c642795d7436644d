"""Shared fixtures for the call gateway tests."""

import pytest
from fastapi.testclient import TestClient

from api.config import GatewayConfig
from api.errors import UpstreamError
from api.gateway import CallGateway
from api.main import create_app
from fakes import AGENT_IDS, FakeCallPlacer, ManualClock


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def placer():
    return FakeCallPlacer()


@pytest.fixture
def config():
    return GatewayConfig(
        base_url="https://demo.example.com",
        agent_ids=dict(AGENT_IDS),
        phone_number_id="phnum_123",
        api_key="xi-test-key",
    )


@pytest.fixture
def gateway(config, placer, clock):
    return CallGateway.from_config(config, placer=placer, clock=clock)


@pytest.fixture
def client(gateway):
    """Create a test client around an isolated gateway."""
    return TestClient(create_app(gateway=gateway))


@pytest.fixture
def failing_placer():
    return FakeCallPlacer(
        error=UpstreamError(
            'ElevenLabs API failed: {"detail":"invalid agent"}',
            upstream_status=422,
            upstream_body='{"detail":"invalid agent"}',
        )
    )
