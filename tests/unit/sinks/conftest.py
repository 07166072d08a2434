import httpx
import pytest

from dumpvec.config.settings import load_settings


@pytest.fixture
def make_settings():
    def _make(**overrides):
        options = dict(_env_file=None, dimension=3, sink_max_retries=2)
        options.update(overrides)
        return load_settings(**options)

    return _make


@pytest.fixture
def mock_client():
    def _make(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make
