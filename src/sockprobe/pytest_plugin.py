"""pytest fixtures for probing streaming endpoints.

Enable with ``pytest_plugins = ["sockprobe.pytest_plugin"]`` in a conftest.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from sockprobe.config import Settings
from sockprobe.echo import serve_endpoint
from sockprobe.probe import Probe
from sockprobe.runtime import ProbeRuntime


@pytest.fixture
def probe_settings() -> Settings:
    return Settings()


@pytest_asyncio.fixture
async def probe_runtime(probe_settings: Settings) -> AsyncIterator[ProbeRuntime]:
    async with ProbeRuntime(probe_settings) as runtime:
        yield runtime


@pytest_asyncio.fixture
async def probe(probe_runtime: ProbeRuntime) -> Probe:
    return probe_runtime.create_probe()


@pytest_asyncio.fixture
async def echo_server_uri() -> AsyncIterator[str]:
    async with serve_endpoint() as uri:
        yield uri
