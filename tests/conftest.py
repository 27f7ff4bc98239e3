"""Shared fixtures for capsync tests."""

from unittest.mock import AsyncMock

import pytest

from capsync.capabilities import MockTransport, MoonlightLamp
from capsync.config import Settings


@pytest.fixture
def settings():
    return Settings(_env_file=None, command_timeout=1.0, command_history=5)


@pytest.fixture
def transport():
    return MockTransport()


@pytest.fixture
def lamp(transport, settings):
    return MoonlightLamp("lamp-1", transport, name="Bedside Lamp", settings=settings)


@pytest.fixture
def ok_transport():
    """
    Factory for AsyncMock transports answering writes with ["ok"] and
    get_* reads with the given result lists, in order.
    """
    def factory(*refresh_results):
        reads = iter(refresh_results)

        async def send(method, params):
            if method.startswith("get_"):
                return {"id": 1, "result": next(reads)}
            return {"id": 1, "result": ["ok"]}

        transport = AsyncMock()
        transport.send.side_effect = send
        return transport

    return factory
