"""Listing endpoint behavior tests."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_list_urls_empty(client: AsyncClient) -> None:
    response = await client.get("/api/urls")
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_list_urls_projects_code_and_destination(client: AsyncClient) -> None:
    for url in ["https://www.google.com", "https://www.github.com"]:
        await client.post("/api/shorten", json={"url": url})

    response = await client.get("/api/urls")
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 2
    assert all(set(item) == {"shortCode", "longUrl"} for item in data)
    assert {item["longUrl"] for item in data} == {"https://www.google.com", "https://www.github.com"}


@pytest.mark.asyncio
async def test_list_urls_record_store_down(client: AsyncClient, records) -> None:
    records.available = False
    response = await client.get("/api/urls")
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to list URLs"
