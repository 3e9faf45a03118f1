import asyncio

import pytest

pytest.importorskip("mcp")

from careagent.mcp_server import build_mcp_server


def test_registry_tools_are_listed(registry):
    server = build_mcp_server(registry, name="careagent-test")
    tools = {tool.name: tool for tool in asyncio.run(server.list_tools())}

    assert set(tools) == set(registry.names())
    for name, tool in tools.items():
        assert tool.description == registry.get(name).description
    assert "patient_id" in tools["fetch_patient_history"].inputSchema["required"]
    assert "drugs" in tools["check_drug_interactions"].inputSchema["properties"]
