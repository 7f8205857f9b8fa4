#!/usr/bin/env python3
"""
Smoke test against a running server:

    serverless-power-mcp --transport streamable-http --port 8000
    MCP_SERVER_URL=http://localhost:8000/mcp pytest tests/test_live_server.py
"""
import asyncio
import json
import os

import pytest
from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client

MCP_SERVER_URL = os.environ.get("MCP_SERVER_URL")

pytestmark = pytest.mark.skipif(not MCP_SERVER_URL, reason="MCP_SERVER_URL not set")


def _payload(result):
    for content in result.content:
        if content.type == "text":
            return json.loads(content.text)
    return None


async def _smoke():
    async with streamablehttp_client(MCP_SERVER_URL, {}, timeout=60, terminate_on_close=False) as (
        read_stream,
        write_stream,
        _,
    ):
        async with ClientSession(read_stream, write_stream) as session:
            await session.initialize()

            tool_result = await session.list_tools()
            names = {tool.name for tool in tool_result.tools}

            lint = _payload(await session.call_tool("lint_power_docs", {}))
            found = _payload(await session.call_tool("search_steering", {"query": "credentials not configured"}))
            check = _payload(await session.call_tool(
                "check_serverless_tool_call",
                {"name": "sam_init", "arguments": {"project_name": "orders-api"}},
            ))
            return names, lint, found, check


def test_live_server_smoke():
    names, lint, found, check = asyncio.run(_smoke())
    assert {"read_steering_file", "lint_power_docs", "check_serverless_tool_call"} <= names
    assert lint["success"] and lint["ok"]
    assert found["results"][0]["name"] == "troubleshooting"
    assert check["success"] and not check["valid"]
    assert "Missing required argument 'runtime'" in check["errors"]
