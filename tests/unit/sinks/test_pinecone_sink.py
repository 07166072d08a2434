"""Unit tests for PineconeSink."""

import json

import httpx
import pytest

from dumpvec.sinks import PineconeSink, SinkBatch, SinkEntry, build_sink
from dumpvec.sinks.pinecone_sink import index_name
from dumpvec.utils.exceptions import ConfigurationError, DimensionMismatchError


def entries():
    return [SinkEntry("a", [0.1, 0.2, 0.3], {"id": 1, "tags": None})]


def test_index_name_is_sanitized():
    assert index_name("My_Database") == "my-database"
    assert index_name("__") == "dumpvec"


def test_cloud_mode_requires_an_api_key(make_settings, mock_client):
    settings = make_settings(export_type="pinecone", host="https://api.pinecone.io")
    with pytest.raises(ConfigurationError):
        build_sink(settings, client=mock_client(lambda request: None))


@pytest.mark.asyncio
async def test_creates_index_and_writes_to_table_namespace(make_settings, mock_client):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/indexes":
            return httpx.Response(201, json={"name": "shop", "host": "shop-abc.svc.pinecone.io"})
        return httpx.Response(200, json={"upsertedCount": 1})

    settings = make_settings(
        export_type="pinecone", host="https://api.pinecone.io", database="shop", db_secret="pk"
    )
    sink = PineconeSink(settings, client=mock_client(handler))
    try:
        await sink.ensure_collection("users", 3, "dot")
        await sink.ensure_collection("orders", 3, "dot")
        count = await sink.upsert("users", SinkBatch("users", entries()))
    finally:
        await sink.close()

    assert count == 1
    assert len(requests) == 2
    create = json.loads(requests[0].content)
    assert create["metric"] == "dotproduct"
    assert create["spec"] == {"serverless": {"cloud": "aws", "region": "us-east-1"}}
    upsert = requests[1]
    assert str(upsert.url) == "https://shop-abc.svc.pinecone.io/vectors/upsert"
    assert upsert.headers["Api-Key"] == "pk"
    body = json.loads(upsert.content)
    assert body["namespace"] == "users"
    assert body["vectors"][0]["metadata"] == {"table": "users", "id": 1}


@pytest.mark.asyncio
async def test_existing_index_is_described(make_settings, mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(409, json={"error": {"code": "ALREADY_EXISTS"}})
        return httpx.Response(200, json={"dimension": 1536, "host": "shop-abc.svc.pinecone.io"})

    settings = make_settings(
        export_type="pinecone", host="https://api.pinecone.io", database="shop", db_secret="pk"
    )
    sink = PineconeSink(settings, client=mock_client(handler))
    try:
        with pytest.raises(DimensionMismatchError):
            await sink.ensure_collection("users", 3, "cosine")
    finally:
        await sink.close()


@pytest.mark.asyncio
async def test_local_emulator_uses_host_for_both_planes(make_settings, mock_client):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"upsertedCount": 1})

    settings = make_settings(export_type="pinecone", host="http://localhost:5080")
    sink = build_sink(settings, client=mock_client(handler))
    try:
        await sink.ensure_collection("users", 3, "cosine")
        await sink.upsert("users", SinkBatch("users", entries()))
    finally:
        await sink.close()

    assert [str(r.url) for r in requests] == ["http://localhost:5080/vectors/upsert"]
    assert "Api-Key" not in requests[0].headers
