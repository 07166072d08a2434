import json

import httpx
import pytest

from dumpvec.sinks import ChromaSink, SinkBatch, SinkEntry
from dumpvec.utils.exceptions import DimensionMismatchError, VectorStoreError

DB_PATH = "/api/v2/tenants/acme/databases/shop"


def make_sink(make_settings, mock_client, handler, **overrides):
    settings = make_settings(
        export_type="chroma", host="http://chroma:8000", tenant="acme", database="shop", **overrides
    )
    return ChromaSink(settings, client=mock_client(handler))


@pytest.mark.asyncio
async def test_ensure_collection_then_upsert(make_settings, mock_client):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        path = request.url.path
        if path == "/api/v2/tenants":
            return httpx.Response(409, json={"error": "exists"})
        if path == "/api/v2/tenants/acme/databases":
            return httpx.Response(200, json={})
        if path == f"{DB_PATH}/collections":
            return httpx.Response(200, json={"id": "col-1", "name": "users", "dimension": None})
        return httpx.Response(200, json={})

    sink = make_sink(make_settings, mock_client, handler, use_auth=True, db_secret="tok")
    entries = [SinkEntry("a", [1.0, 0.0, 0.0], {"id": 1, "tags": ["x"], "note": None})]
    try:
        await sink.ensure_collection("users", 3, "dot")
        await sink.ensure_collection("orders", 3, "dot")
        assert await sink.upsert("users", SinkBatch("users", entries)) == 1
    finally:
        await sink.close()

    paths = [r.url.path for r in requests]
    assert paths.count("/api/v2/tenants") == 1
    create = json.loads(requests[2].content)
    assert create == {"name": "users", "metadata": {"hnsw:space": "ip"}, "get_or_create": True}
    upsert = requests[-1]
    assert upsert.url.path == f"{DB_PATH}/collections/col-1/upsert"
    assert upsert.headers["X-Chroma-Token"] == "tok"
    body = json.loads(upsert.content)
    assert body["ids"] == ["a"]
    assert body["metadatas"] == [{"table": "users", "id": 1, "tags": '["x"]'}]
    assert json.loads(body["documents"][0]) == {"id": 1, "tags": ["x"], "note": None}


@pytest.mark.asyncio
async def test_dimension_reported_by_collection_is_checked(make_settings, mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/collections"):
            return httpx.Response(200, json={"id": "col-1", "dimension": 768})
        return httpx.Response(200, json={})

    sink = make_sink(make_settings, mock_client, handler)
    try:
        with pytest.raises(DimensionMismatchError):
            await sink.ensure_collection("users", 3, "cosine")
    finally:
        await sink.close()


@pytest.mark.asyncio
async def test_upsert_without_collection_is_an_error(make_settings, mock_client):
    sink = make_sink(make_settings, mock_client, lambda request: httpx.Response(200, json={}))
    try:
        with pytest.raises(VectorStoreError):
            await sink.upsert("users", SinkBatch("users", [SinkEntry("a", [0.0, 0.0, 0.0])]))
    finally:
        await sink.close()
