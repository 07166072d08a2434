"""Text Embeddings Inference (TEI) provider and its managed server process."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional

import httpx

from ..utils.constants import TEI_POLL_INTERVAL, TEI_STARTUP_TIMEOUT
from ..utils.exceptions import ProviderProcessError, ProviderResponseError
from .embedding_provider import EmbeddingProvider

logger = logging.getLogger(__name__)


class TeiServerProcess:
    """A local TEI router process scoped to one pipeline run.

    ``start`` reuses a server that already answers on the port, otherwise it
    spawns ``binary --model-id MODEL --port PORT --auto-truncate`` and polls
    ``/health`` until it is ready. ``stop`` terminates the process we
    spawned and kills it if it does not exit promptly.
    """

    def __init__(
        self,
        binary_path: str,
        model: str,
        port: int,
        startup_timeout: float = TEI_STARTUP_TIMEOUT,
        poll_interval: float = TEI_POLL_INTERVAL,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.binary_path = binary_path
        self.model = model
        self.port = port
        self.startup_timeout = startup_timeout
        self.poll_interval = poll_interval
        self.url = f"http://127.0.0.1:{port}"
        self.process: Optional[asyncio.subprocess.Process] = None
        self._client = client or httpx.AsyncClient(timeout=5.0)

    async def is_ready(self) -> bool:
        try:
            response = await self._client.get(f"{self.url}/health")
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    async def start(self) -> str:
        """Ensure a server is running and return its base URL.

        Raises:
            ProviderProcessError: If the binary is missing, exits early, or
                does not become ready within ``startup_timeout``.
        """
        if self.process is not None:
            return self.url
        if await self.is_ready():
            logger.info("Reusing TEI server already listening on %s", self.url)
            return self.url

        logger.info("Starting TEI server %s for model %s", self.binary_path, self.model)
        try:
            self.process = await asyncio.create_subprocess_exec(
                self.binary_path,
                "--model-id",
                self.model,
                "--port",
                str(self.port),
                "--auto-truncate",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise ProviderProcessError(
                f"Cannot start TEI binary {self.binary_path}: {exc}"
            ) from exc

        try:
            await self._wait_until_ready()
        except BaseException:
            # Includes cancellation: the spawned process must not outlive start().
            await self.stop()
            raise
        return self.url

    async def _wait_until_ready(self) -> None:
        deadline = time.monotonic() + self.startup_timeout
        while time.monotonic() < deadline:
            if self.process.returncode is not None:
                code = self.process.returncode
                self.process = None
                raise ProviderProcessError(f"TEI server exited early with code {code}")
            if await self.is_ready():
                logger.info("TEI server ready on %s", self.url)
                return
            await asyncio.sleep(self.poll_interval)

        raise ProviderProcessError(
            f"TEI server not ready after {self.startup_timeout}s"
        )

    async def stop(self) -> None:
        process, self.process = self.process, None
        if process is not None and process.returncode is None:
            logger.info("Stopping TEI server (pid %s)", process.pid)
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=10.0)
            except asyncio.TimeoutError:
                logger.warning("TEI server did not exit, killing it")
                process.kill()
                await process.wait()
        await self._client.aclose()

    async def __aenter__(self) -> "TeiServerProcess":
        try:
            await self.start()
        except BaseException:
            await self.stop()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


class TeiEmbeddingProvider(EmbeddingProvider):
    """Client for a TEI ``/embed`` endpoint.

    With ``server`` set, the server is started on first use and stopped on
    ``close``; otherwise ``url`` must point at a running instance.
    """

    name = "tei"

    def __init__(
        self,
        url: Optional[str] = None,
        server: Optional[TeiServerProcess] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        if not url and server is None:
            raise ValueError("TeiEmbeddingProvider needs a url or a server")
        self.url = url.rstrip("/") if url else None
        self.server = server
        self._start_lock = asyncio.Lock()

    async def start(self) -> None:
        if self.url:
            return
        async with self._start_lock:
            if not self.url:
                self.url = await self.server.start()

    async def _embed_batch(self, texts: List[str]) -> List[List[float]]:
        await self.start()

        async def call() -> httpx.Response:
            response = await self.client.post(
                f"{self.url}/embed", json={"inputs": texts, "truncate": True}
            )
            self._raise_for_transient(response)
            return response

        response = await self._request(call)
        if response.status_code != 200:
            raise ProviderResponseError(
                f"TEI embedding error {response.status_code}: {response.text[:200]}"
            )
        try:
            vectors = response.json()
        except ValueError as exc:
            raise ProviderResponseError(f"Unexpected TEI response: {exc}") from exc
        if not isinstance(vectors, list):
            raise ProviderResponseError("TEI response is not a list of vectors")
        return vectors

    async def close(self):
        try:
            if self.server is not None:
                await self.server.stop()
        finally:
            await super().close()
