"""Tests for loader.py -- lazy, cached, failure-isolated collection loading."""

import asyncio

import httpx
import pytest

from podcast_composer.api.client import NotebookClient
from podcast_composer.errors import FetchError
from podcast_composer.loader import CollectionLoader


@pytest.mark.asyncio
async def test_loads_sources_and_notes(client):
    loader = CollectionLoader(client)
    coll = await loader.ensure_loaded("notebook:a")
    assert [s.id for s in coll.sources] == ["source:s1", "source:s2"]
    assert [n.id for n in coll.notes] == ["note:n1"]
    assert loader.is_loaded("notebook:a")


@pytest.mark.asyncio
async def test_fetches_once_per_notebook(client):
    loader = CollectionLoader(client)
    await loader.ensure_loaded("notebook:a")
    await loader.ensure_loaded("notebook:a")
    assert client.list_calls.count(("sources", "notebook:a")) == 1
    assert client.list_calls.count(("notes", "notebook:a")) == 1


@pytest.mark.asyncio
async def test_concurrent_requests_share_fetch(client):
    loader = CollectionLoader(client)
    first, second = await asyncio.gather(
        loader.ensure_loaded("notebook:a"), loader.ensure_loaded("notebook:a")
    )
    assert first is second
    assert client.list_calls.count(("sources", "notebook:a")) == 1


@pytest.mark.asyncio
async def test_failure_is_scoped_to_notebook(client):
    client.fail_lists.add("notebook:a")
    loader = CollectionLoader(client)
    failed, ok = await asyncio.gather(
        loader.ensure_loaded("notebook:a"), loader.ensure_loaded("notebook:b")
    )
    assert failed.total == 0
    assert not loader.is_loaded("notebook:a")
    assert isinstance(loader.errors["notebook:a"], FetchError)
    assert [s.id for s in ok.sources] == ["source:s3"]
    assert "notebook:b" not in loader.errors


@pytest.mark.asyncio
async def test_retry_after_failure(client):
    client.fail_lists.add("notebook:a")
    loader = CollectionLoader(client)
    await loader.ensure_loaded("notebook:a")
    client.fail_lists.clear()
    coll = await loader.retry("notebook:a")
    assert coll.total == 3
    assert "notebook:a" not in loader.errors


@pytest.mark.asyncio
async def test_get_unloaded_returns_empty(client):
    loader = CollectionLoader(client)
    assert loader.get("notebook:a").total == 0


@pytest.mark.asyncio
async def test_clear_drops_cache(client):
    loader = CollectionLoader(client)
    await loader.ensure_loaded("notebook:a")
    loader.clear()
    assert not loader.is_loaded("notebook:a")
    await loader.ensure_loaded("notebook:a")
    assert client.list_calls.count(("sources", "notebook:a")) == 2


@pytest.mark.asyncio
async def test_fetch_completing_after_clear_is_not_cached(client):
    loader = CollectionLoader(client)
    task = asyncio.create_task(loader.ensure_loaded("notebook:a"))
    await asyncio.sleep(0)
    loader.clear()
    await task
    assert not loader.is_loaded("notebook:a")


@pytest.mark.asyncio
async def test_malformed_listing_is_recorded_as_fetch_error():
    def handler(request):
        if request.url.params["notebook_id"] == "notebook:a":
            return httpx.Response(200, json={"sources": "unexpected"})
        return httpx.Response(200, json=[])

    transport = httpx.MockTransport(handler)
    async with NotebookClient("http://nb:5055", transport=transport) as client:
        loader = CollectionLoader(client)
        bad, good = await asyncio.gather(
            loader.ensure_loaded("notebook:a"), loader.ensure_loaded("notebook:b")
        )
    assert bad.total == 0
    assert not loader.is_loaded("notebook:a")
    assert isinstance(loader.errors["notebook:a"], FetchError)
    assert loader.is_loaded("notebook:b")
