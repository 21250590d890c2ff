"""Status tool: get_status."""

import json
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..state import state


def register_status_tools(mcp: FastMCP):

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))
    def get_status() -> str:
        """Return a summary of the current terrain state.

        Shows which activities are loaded and selected, the fitted projection,
        current parameters, and what has been densified and built.
        """
        return json.dumps(state.summary(), indent=2)

    @mcp.resource("state://session", mime_type="application/json")
    def session_state() -> str:
        """Current session summary, same content as get_status."""
        return json.dumps(state.summary(), indent=2)
