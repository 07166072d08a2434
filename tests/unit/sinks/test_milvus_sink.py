import json

import httpx
import pytest

from dumpvec.sinks import MilvusSink, SinkBatch, SinkEntry
from dumpvec.utils.exceptions import DimensionMismatchError, VectorStoreError


def make_sink(make_settings, mock_client, handler, **overrides):
    settings = make_settings(
        export_type="milvus", host="http://milvus:19530", database="default", **overrides
    )
    return MilvusSink(settings, client=mock_client(handler))


@pytest.mark.asyncio
async def test_missing_collection_is_created(make_settings, mock_client):
    bodies = {}

    def handler(request: httpx.Request) -> httpx.Response:
        bodies[request.url.path] = json.loads(request.content)
        if request.url.path.endswith("/describe"):
            return httpx.Response(200, json={"code": 100, "message": "collection not found"})
        return httpx.Response(200, json={"code": 0, "data": {}})

    sink = make_sink(make_settings, mock_client, handler)
    try:
        await sink.ensure_collection("users", 3, "cosine")
    finally:
        await sink.close()

    create = bodies["/v2/vectordb/collections/create"]
    assert create["dbName"] == "default"
    assert create["collectionName"] == "users"
    assert create["dimension"] == 3
    assert create["metricType"] == "COSINE"
    assert create["idType"] == "VarChar"
    assert create["enableDynamicField"] is True


@pytest.mark.asyncio
async def test_existing_collection_dimension_is_checked(make_settings, mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "code": 0,
                "data": {
                    "fields": [
                        {"name": "id", "type": "VarChar", "params": []},
                        {"name": "vector", "type": "FloatVector", "params": [{"key": "dim", "value": "768"}]},
                    ]
                },
            },
        )

    sink = make_sink(make_settings, mock_client, handler)
    try:
        with pytest.raises(DimensionMismatchError):
            await sink.ensure_collection("users", 3, "cosine")
    finally:
        await sink.close()


@pytest.mark.asyncio
async def test_upsert_rows_and_bearer_auth(make_settings, mock_client):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"code": 0, "data": {"upsertCount": 1}})

    sink = make_sink(
        make_settings, mock_client, handler, use_auth=True, db_user="root", db_password="Milvus"
    )
    try:
        count = await sink.upsert(
            "users", SinkBatch("users", [SinkEntry("a", [0.1, 0.2, 0.3], {"id": "x"})])
        )
    finally:
        await sink.close()

    assert count == 1
    request = seen[0]
    assert request.headers["Authorization"] == "Bearer root:Milvus"
    row = json.loads(request.content)["data"][0]
    assert row == {"id": "a", "vector": [0.1, 0.2, 0.3], "table": "users", "metadata": {"id": "x"}}


@pytest.mark.asyncio
async def test_error_code_in_body_is_an_error(make_settings, mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": 1100, "message": "invalid dim"})

    sink = make_sink(make_settings, mock_client, handler)
    try:
        with pytest.raises(VectorStoreError):
            await sink.upsert("users", SinkBatch("users", [SinkEntry("a", [0.0, 0.0, 0.0])]))
    finally:
        await sink.close()
