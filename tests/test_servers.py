from datetime import datetime

import pytest
from aiohttp.test_utils import TestClient, TestServer

from adbench.servers import Framework, create_app, target_url


def _client(framework):
    return TestClient(TestServer(create_app(framework)))


def test_target_url_embeds_ad_id():
    assert target_url("ad1") == "https://example.com/product/ad1"


def test_framework_from_string():
    assert Framework("fiber") is Framework.FIBER
    assert Framework.HERTZ.display_name == "Hertz"


def test_unknown_framework_rejected():
    with pytest.raises(ValueError):
        create_app("express")


@pytest.mark.asyncio
async def test_ad_redirects_to_target():
    async with _client("fiber") as client:
        response = await client.get("/ad", params={"id": "ad1"}, allow_redirects=False)
        assert response.status == 302
        assert response.headers["Location"] == target_url("ad1")


@pytest.mark.asyncio
@pytest.mark.parametrize("framework", ["fiber", "hertz"])
async def test_ad_without_id_is_bad_request(framework):
    async with _client(framework) as client:
        response = await client.get("/ad", allow_redirects=False)
        assert response.status == 400
        assert await response.text() == "缺少广告ID参数"


@pytest.mark.asyncio
async def test_empty_id_is_bad_request():
    async with _client("hertz") as client:
        response = await client.get("/ad?id=", allow_redirects=False)
        assert response.status == 400


@pytest.mark.asyncio
async def test_stats_counts_every_ad_request():
    async with _client("hertz") as client:
        await client.get("/ad", params={"id": "a"}, allow_redirects=False)
        await client.get("/ad", params={"id": "b"}, allow_redirects=False)
        await client.get("/ad", allow_redirects=False)
        response = await client.get("/stats")
        body = await response.json()
        assert body == {"framework": "Hertz", "requests": 3}


@pytest.mark.asyncio
async def test_counters_are_per_application():
    async with _client("fiber") as first, _client("fiber") as second:
        await first.get("/ad", params={"id": "x"}, allow_redirects=False)
        first_stats = await (await first.get("/stats")).json()
        second_stats = await (await second.get("/stats")).json()
        assert first_stats["requests"] == 1
        assert second_stats["requests"] == 0


@pytest.mark.asyncio
async def test_health_reports_ok_and_timestamp():
    async with _client("fiber") as client:
        response = await client.get("/health")
        assert response.status == 200
        body = await response.json()
        assert body["status"] == "ok"
        parsed = datetime.fromisoformat(body["time"].replace("Z", "+00:00"))
        assert parsed.tzinfo is not None


@pytest.mark.asyncio
async def test_server_header_names_framework():
    async with _client("fiber") as client:
        response = await client.get("/health")
        assert response.headers["Server"] == "Fiber"