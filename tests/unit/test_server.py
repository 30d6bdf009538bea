import json
from unittest.mock import AsyncMock

import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError

from smart_lookup.config import Settings
from smart_lookup.mcp import server
from smart_lookup.services.cache_manager import CacheManager
from smart_lookup.services.errors import EnvironmentNotReadyError, SearchValidationError
from smart_lookup.services.search_service import SearchService


def test_tool_error_carries_message_and_details():
    error = server._tool_error(
        SearchValidationError("filter.limit must not exceed 50", details={"limit": 80})
    )

    assert isinstance(error, ToolError)
    assert "filter.limit must not exceed 50" in str(error)
    assert "80" in str(error)


def test_tool_error_without_details():
    error = server._tool_error(EnvironmentNotReadyError("not ready"))

    assert str(error) == "not ready"


# ============================================================================
# Tools over an in-memory client
# ============================================================================

def _install_service(monkeypatch, environment):
    factory = AsyncMock(return_value=environment)
    service = SearchService(
        settings=Settings(_env_file=None, default_vault="main"),
        environment_factory=factory,
        cache_manager=CacheManager(ttl_seconds=60),
    )
    monkeypatch.setattr(server, "get_search_service", lambda: service)
    return factory


def _payload(result):
    return json.loads(result.content[0].text)


@pytest.mark.asyncio
async def test_lookup_tool_returns_search_response(monkeypatch, fake_environment, fake_collection, make_hit):
    sources = fake_collection(responses={"lookup": [make_hit("a.md", 0.9), make_hit("b.md", 0.89)]})
    _install_service(monkeypatch, fake_environment(sources=sources, vault_name="main"))

    async with Client(server.mcp) as client:
        result = await client.call_tool(
            "smart_connections_lookup", {"hypotheticals": ["topic"], "filter": {"limit": 5}}
        )

    response = _payload(result)
    assert [r["key"] for r in response["results"]] == ["a.md", "b.md"]
    assert response["count"] == 2
    assert response["search_params"]["mode"] == "vector"
    assert response["environment_summary"]["vault_name"] == "main"


@pytest.mark.asyncio
async def test_lookup_tool_rejects_limit_over_maximum(monkeypatch, fake_environment, fake_collection):
    sources = fake_collection()
    _install_service(monkeypatch, fake_environment(sources=sources))

    async with Client(server.mcp) as client:
        with pytest.raises(ToolError):
            await client.call_tool(
                "smart_connections_lookup", {"hypotheticals": ["topic"], "filter": {"limit": 80}}
            )

    assert sources.calls == []


@pytest.mark.asyncio
async def test_lookup_tool_reports_unready_environment(monkeypatch, fake_environment, fake_collection):
    _install_service(monkeypatch, fake_environment(sources=fake_collection(), ready=False))

    async with Client(server.mcp) as client:
        with pytest.raises(ToolError, match="not ready"):
            await client.call_tool("smart_connections_lookup", {"hypotheticals": ["topic"]})


@pytest.mark.asyncio
async def test_embed_tool_names_the_vault_used(monkeypatch, fake_environment, fake_collection):
    factory = _install_service(
        monkeypatch, fake_environment(sources=fake_collection(), embedding=[0.5, 0.25])
    )

    async with Client(server.mcp) as client:
        result = await client.call_tool("smart_connections_embed", {"content": "hello", "vault": "  "})

    assert _payload(result) == {"embedding": [0.5, 0.25], "dimensions": 2, "vault": "main"}
    factory.assert_awaited_once_with("main")


@pytest.mark.asyncio
async def test_status_tool_reports_summary(monkeypatch, fake_environment, fake_collection):
    _install_service(
        monkeypatch, fake_environment(sources=fake_collection(item_count=3), vault_name="main")
    )

    async with Client(server.mcp) as client:
        result = await client.call_tool("smart_connections_status", {})

    status = _payload(result)
    assert status["environment_summary"]["sources_count"] == 3
    assert status["cache"]["vault_key"] == "main"
    assert status["error"] is None
