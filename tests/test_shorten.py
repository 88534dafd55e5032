"""Shorten endpoint behavior tests."""

import pytest
from httpx import AsyncClient

from tinyurl.config import get_settings


@pytest.mark.asyncio
async def test_shorten_valid_url(client: AsyncClient) -> None:
    response = await client.post("/api/shorten", json={"url": "https://example.com"})
    assert response.status_code == 200
    data = response.json()
    assert data == {
        "shortUrl": f"{get_settings().BASE_URL.rstrip('/')}/aB3dE7gH",
        "shortCode": "aB3dE7gH",
        "longUrl": "https://example.com",
    }


@pytest.mark.asyncio
async def test_shorten_missing_url(client: AsyncClient, code_pool) -> None:
    response = await client.post("/api/shorten", json={})
    assert response.status_code == 400
    assert response.json()["detail"] == "URL is required"
    assert code_pool.allocate_calls == 0


@pytest.mark.asyncio
async def test_shorten_without_body(client: AsyncClient, code_pool) -> None:
    response = await client.post("/api/shorten")
    assert response.status_code == 400
    assert response.json()["detail"] == "URL is required"
    assert code_pool.allocate_calls == 0


@pytest.mark.asyncio
async def test_shorten_form_body(client: AsyncClient, code_pool) -> None:
    response = await client.post("/api/shorten", data={"url": "https://example.com"})
    assert response.status_code == 400
    assert code_pool.allocate_calls == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [{"url": 123}, {"url": ["https://example.com"]}, ["https://example.com"], "https://example.com"],
)
async def test_shorten_non_string_url(client: AsyncClient, code_pool, body) -> None:
    response = await client.post("/api/shorten", json=body)
    assert response.status_code == 400
    assert response.json()["detail"] == "URL is required"
    assert code_pool.allocate_calls == 0


@pytest.mark.asyncio
async def test_shorten_empty_url(client: AsyncClient, code_pool) -> None:
    response = await client.post("/api/shorten", json={"url": ""})
    assert response.status_code == 400
    assert code_pool.allocate_calls == 0


@pytest.mark.asyncio
async def test_shorten_does_not_validate_url_format(client: AsyncClient) -> None:
    response = await client.post("/api/shorten", json={"url": "not-a-url"})
    assert response.status_code == 200
    assert response.json()["longUrl"] == "not-a-url"


@pytest.mark.asyncio
async def test_shorten_pool_exhausted(client: AsyncClient, code_pool, records) -> None:
    for code in code_pool.rows:
        code_pool.rows[code] = True

    response = await client.post("/api/shorten", json={"url": "https://example.com"})
    assert response.status_code == 500
    assert response.json()["detail"] == "No available short codes"
    assert records.insert_calls == 0


@pytest.mark.asyncio
async def test_shorten_record_store_down_hides_details(client: AsyncClient, records) -> None:
    records.available = False

    response = await client.post("/api/shorten", json={"url": "https://example.com"})
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to create short URL"
    assert "connection refused" not in response.text


@pytest.mark.asyncio
async def test_shorten_code_pool_down(client: AsyncClient, code_pool) -> None:
    code_pool.available = False

    response = await client.post("/api/shorten", json={"url": "https://example.com"})
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to create short URL"


@pytest.mark.asyncio
async def test_shorten_succeeds_with_cache_down(client: AsyncClient, cache, records) -> None:
    cache.available = False

    response = await client.post("/api/shorten", json={"url": "https://example.com"})
    assert response.status_code == 200
    assert response.json()["shortCode"] in records.records


@pytest.mark.asyncio
async def test_shorten_records_forwarded_client_ip(client: AsyncClient, records) -> None:
    response = await client.post(
        "/api/shorten",
        json={"url": "https://example.com"},
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.2"},
    )
    short_code = response.json()["shortCode"]
    assert records.records[short_code].source_ip == "203.0.113.7"


@pytest.mark.asyncio
async def test_shorten_multiple_urls(client: AsyncClient) -> None:
    urls = [
        "https://www.google.com",
        "https://www.github.com",
        "https://www.python.org",
    ]
    codes = set()
    for url in urls:
        response = await client.post("/api/shorten", json={"url": url})
        assert response.status_code == 200
        codes.add(response.json()["shortCode"])
    assert len(codes) == 3


@pytest.mark.asyncio
async def test_responses_carry_security_headers(client: AsyncClient) -> None:
    response = await client.post("/api/shorten", json={"url": "https://example.com"})
    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "SAMEORIGIN"
