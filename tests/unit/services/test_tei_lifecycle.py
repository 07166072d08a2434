"""Lifecycle of a provider that manages its own TEI server."""

import unittest
from unittest.mock import AsyncMock, MagicMock

import httpx

from dumpvec.services.tei_service import TeiEmbeddingProvider, TeiServerProcess
from dumpvec.utils.exceptions import ProviderProcessError


class TestTeiProviderLifecycle(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.server = MagicMock(spec=TeiServerProcess)
        self.server.start = AsyncMock(return_value="http://127.0.0.1:19999")
        self.server.stop = AsyncMock()
        self.client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[[1.0, 2.0]]))
        )

    async def test_server_started_once_and_stopped_on_close(self):
        provider = TeiEmbeddingProvider(
            server=self.server, model="bge", dimension=2, client=self.client
        )
        async with provider:
            await provider.embed(["a"])
            await provider.embed(["b"])

        self.server.start.assert_awaited_once()
        self.server.stop.assert_awaited_once()
        self.assertTrue(self.client.is_closed)

    async def test_server_stopped_when_the_run_fails(self):
        provider = TeiEmbeddingProvider(
            server=self.server, model="bge", dimension=2, client=self.client
        )
        with self.assertRaises(RuntimeError):
            async with provider:
                raise RuntimeError("pipeline aborted")
        self.server.stop.assert_awaited_once()

    async def test_start_failure_propagates(self):
        self.server.start = AsyncMock(side_effect=ProviderProcessError("not ready"))
        provider = TeiEmbeddingProvider(
            server=self.server, model="bge", dimension=2, client=self.client
        )
        with self.assertRaises(ProviderProcessError):
            await provider.start()
        await provider.close()
        self.server.stop.assert_awaited_once()

    async def test_failed_start_inside_async_with_releases_everything(self):
        self.server.start = AsyncMock(side_effect=ProviderProcessError("not ready"))
        provider = TeiEmbeddingProvider(
            server=self.server, model="bge", dimension=2, client=self.client
        )
        with self.assertRaises(ProviderProcessError):
            async with provider:
                self.fail("body must not run when start fails")
        self.server.stop.assert_awaited_once()
        self.assertTrue(self.client.is_closed)
