"""Test indexer server tool registration."""

import pytest
from fastmcp import FastMCP

from semdex.indexer_server.tools import register_indexer_tools


class TestServerRegistration:
    """Test suite for indexer server tool registration."""

    @pytest.mark.asyncio
    async def test_indexer_server_registration(self):
        """Test that indexer server tools register correctly."""
        mcp = FastMCP(name="Test Indexer Server")
        register_indexer_tools(mcp)

        tools = await mcp.get_tools()
        tool_names = list(tools)

        expected_tools = ["build_text_documents", "find_occurrences", "goto_definition"]

        assert len(tool_names) == 3, f"Expected 3 indexer tools, got {len(tool_names)}"
        for tool in expected_tools:
            assert tool in tool_names, f"Indexer tool '{tool}' not registered"

    @pytest.mark.asyncio
    async def test_server_module_registers_tools(self):
        """Test that the standalone server module exposes a configured FastMCP instance."""
        from semdex.indexer_server.server import mcp

        tools = await mcp.get_tools()

        assert sorted(tools) == ["build_text_documents", "find_occurrences", "goto_definition"]

    @pytest.mark.asyncio
    async def test_tool_descriptions_are_present(self):
        """Test that every tool carries its usage docstring as description."""
        mcp = FastMCP(name="Test Indexer Server")
        register_indexer_tools(mcp)

        tools = await mcp.get_tools()

        for name, tool in tools.items():
            assert tool.description, f"Tool '{name}' has no description"
            assert "Use this tool when:" in tool.description
