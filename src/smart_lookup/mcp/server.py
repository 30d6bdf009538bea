"""FastMCP server exposing Smart Connections lookup tools."""

from __future__ import annotations

import logging
import sys
import time
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

# Load environment variables from .env file
load_dotenv()

from ..config import get_settings
from ..services import (
    EnvironmentNotReadyError,
    SearchValidationError,
    get_search_service,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "smart-connections-lookup",
    instructions=(
        "Search a Smart Connections knowledge base. Provide 'hypotheticals' for semantic search, "
        "query_type='lexical' with 'keywords' for keyword search (falls back to semantic search "
        "with the keywords when nothing matches), or 'direct_vector' with vector_operation "
        "nearest/furthest/nearest_to (nearest_to needs 'entity_key'). filter.collection selects "
        "sources, blocks or both; filter.limit (1-50, default 10) is applied after results are "
        "ranked and cut at the first large score drop. Results with content_missing=true had no "
        "readable content."
    ),
)


def _tool_error(exc: Exception) -> ToolError:
    message = getattr(exc, "message", str(exc))
    details = getattr(exc, "details", None)
    if details:
        return ToolError(f"{message}: {details}")
    return ToolError(message)


@mcp.tool(
    name="smart_connections_lookup",
    description=(
        "Search Smart Connections knowledge base using vector similarity, lexical search, "
        "or direct vector operations"
    ),
)
async def smart_connections_lookup(
    hypotheticals: Optional[List[str]] = Field(
        default=None,
        description="Search queries or hypothetical relevant content (for vector search)",
    ),
    query_type: Optional[str] = Field(
        default=None,
        description="Type of search: 'vector' (semantic) or 'lexical' (keyword)",
    ),
    keywords: Optional[List[str]] = Field(
        default=None,
        description="Keywords for lexical search (required when query_type is lexical)",
    ),
    direct_vector: Optional[List[float]] = Field(
        default=None,
        description="Direct vector for similarity search (bypasses hypotheticals)",
    ),
    vector_operation: Optional[str] = Field(
        default=None,
        description="Vector operation when using direct_vector: nearest, furthest or nearest_to",
    ),
    entity_key: Optional[str] = Field(
        default=None,
        description="Key of the stored item whose neighbours nearest_to should find",
    ),
    filter: Optional[Dict[str, Any]] = Field(
        default=None,
        description=(
            "limit (max 50), collection (sources|blocks|both), key_starts_with, "
            "exclude_key_starts_with, key_starts_with_any"
        ),
    ),
    vault: Optional[str] = Field(
        default=None,
        description="Vault to search (defaults to the configured vault)",
    ),
) -> Dict[str, Any]:
    start_time = time.time()
    payload = {
        "hypotheticals": hypotheticals,
        "query_type": query_type,
        "keywords": keywords,
        "direct_vector": direct_vector,
        "vector_operation": vector_operation,
        "entity_key": entity_key,
        "filter": filter,
    }

    try:
        response = await get_search_service().lookup(payload, vault=vault)
    except (SearchValidationError, EnvironmentNotReadyError) as exc:
        logger.error(f"Lookup failed: {exc.message}", extra={"details": exc.details})
        raise _tool_error(exc) from exc

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "MCP tool called",
        extra={
            "tool_name": "smart_connections_lookup",
            "vault": response.environment_summary.vault_name,
            "mode": response.search_params.get("mode"),
            "result_count": response.count,
            "duration_ms": f"{duration_ms:.2f}",
        },
    )
    return response.model_dump(mode="json")


@mcp.tool(
    name="smart_connections_embed",
    description="Generate an embedding for content using the vault's Smart Connections model",
)
async def smart_connections_embed(
    content: str = Field(..., min_length=1, description="Text to embed"),
    vault: Optional[str] = Field(default=None, description="Vault whose model to use"),
) -> Dict[str, Any]:
    start_time = time.time()
    service = get_search_service()
    vault_key = service.resolve_vault(vault)
    try:
        embedding = await service.embed(content, vault=vault_key)
    except EnvironmentNotReadyError as exc:
        logger.error(f"Embed failed: {exc.message}", extra={"details": exc.details})
        raise _tool_error(exc) from exc

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "MCP tool called",
        extra={
            "tool_name": "smart_connections_embed",
            "dimensions": len(embedding),
            "duration_ms": f"{duration_ms:.2f}",
        },
    )
    return {
        "embedding": embedding,
        "dimensions": len(embedding),
        "vault": vault_key,
    }


@mcp.tool(
    name="smart_connections_status",
    description="Report collection availability and cache state for a vault",
)
async def smart_connections_status(
    vault: Optional[str] = Field(default=None, description="Vault to inspect"),
) -> Dict[str, Any]:
    return await get_search_service().status(vault=vault)


def main() -> None:
    settings = get_settings()

    # stdout carries the stdio transport, so logs go to stderr
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    transport = settings.mcp_transport
    if transport in {"http", "sse", "streamable-http"}:
        logger.info(
            "Starting MCP server",
            extra={"transport": transport, "host": settings.mcp_host, "port": settings.mcp_port},
        )
        mcp.run(transport=transport, host=settings.mcp_host, port=settings.mcp_port)
    else:
        logger.info("Starting MCP server", extra={"transport": transport})
        mcp.run(transport=transport)


if __name__ == "__main__":
    main()
