"""MCP server for track-terrain.

Registers all tools and runs via stdio transport.
"""

import logging
import os
import sys

from mcp.server.fastmcp import FastMCP

from .tools.activities import register_activity_tools
from .tools.params import register_param_tools
from .tools.terrain import register_terrain_tools
from .tools.status import register_status_tools

LOG_LEVEL_ENV = "TRACK_TERRAIN_LOG_LEVEL"

mcp = FastMCP(
    "track-terrain",
    instructions="Turn recorded activity tracks into a densified, colored 3D terrain surface",
)

# Register all tool groups
register_activity_tools(mcp)
register_param_tools(mcp)
register_terrain_tools(mcp)
register_status_tools(mcp)


def configure_logging() -> None:
    # stdout carries the MCP protocol
    level = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    configure_logging()
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
