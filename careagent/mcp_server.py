"""
MCP (Model Context Protocol) Server

Exposes the same clinical tools over MCP, so any MCP-capable client can
discover and call them without importing this package. The agent in this
repo calls the registry in-process; the MCP server is the out-of-process
door to the same functions.

Run with the stdio transport (the client launches this as a subprocess):

    python -m careagent.mcp_server --config config/agent_config.yaml
"""

import argparse
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def build_mcp_server(registry: ToolRegistry, name: str = "careagent") -> FastMCP:
    """Create a FastMCP server exposing every registry tool under the same name."""
    mcp = FastMCP(name)
    for tool in registry:
        mcp.add_tool(tool.function, name=tool.name, description=tool.description)
        logger.debug("Exposed tool %s over MCP", tool.name)
    return mcp


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(description="Serve the clinical tools over MCP (stdio)")
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    args = parser.parse_args(argv)

    # Imported here so building a server from an existing registry stays light
    from .assistant import build_registry
    from .utils.config_loader import load_config
    from .utils.logging_utils import setup_logging

    config = load_config(args.config)
    logging_config = config.get_logging_config()
    setup_logging(logging_config.get('level', 'INFO'), logging_config.get('format'))

    mcp = build_mcp_server(build_registry(config))
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
