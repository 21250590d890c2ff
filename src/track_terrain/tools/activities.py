"""Activity tools: load_activities, select_activities, set_viewport, project_activities, find_points_near."""

import json
import logging

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import ValidationError

from ..state import state, Viewport
from ..core.activities import load_activities_file
from ..core.projection import fit_projection
from ..core.spatial_index import build_point_index, build_segment_index, query_radius
from ..core.tracks import project_tracks
from ._prereqs import require_state

logger = logging.getLogger(__name__)


def register_activity_tools(mcp: FastMCP):

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    def load_activities(file_path: str) -> str:
        """Load activity records from a JSON file and select all of them.

        The file holds a JSON array of activities. Each record has an id, a
        name, a ``map`` with an encoded ``polyline`` or ``summary_polyline``,
        an optional ``total_elevation_gain``, and optionally ``streams`` with
        ``latlng`` and ``altitude`` arrays.
        **Next:** select_activities (optional), then project_activities.

        Args:
            file_path: Absolute path to a .json activity file.
        """
        try:
            tracks = load_activities_file(file_path)
        except FileNotFoundError:
            return f"Error: File not found: {file_path}"
        except json.JSONDecodeError as e:
            return f"Error: Invalid JSON in {file_path}: {e}"
        except ValueError as e:
            return f"Error: {e}"

        state.set_activities(tracks)

        without_route = sum(1 for t in tracks if not t.points)
        with_altitude = sum(1 for t in tracks if t.has_altitude)
        total_points = sum(len(t.points) for t in tracks)
        return (
            f"Loaded {len(tracks)} activit{'y' if len(tracks) == 1 else 'ies'}, "
            f"{total_points} points. {with_altitude} with altitude, "
            f"{without_route} without route data. All selected."
        )

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False))
    def select_activities(ids: list[str]) -> str:
        """Choose which loaded activities make up the terrain.

        Changing the selection refits the projection, so everything
        downstream must be rebuilt.
        **Requires:** load_activities.
        **Next:** project_activities.

        Args:
            ids: Activity ids to select (order does not matter).
        """
        if not state.activities:
            return "Error: Load activities first with load_activities."
        if not ids:
            return "Error: Select at least one activity."
        known = {a.id for a in state.activities}
        unknown = [i for i in ids if i not in known]
        if unknown:
            return f"Error: Unknown activity id(s): {', '.join(unknown)}"

        state.selected_ids = list(dict.fromkeys(ids))
        state.invalidate_downstream()
        return f"Selected {len(state.selected_ids)} activit{'y' if len(state.selected_ids) == 1 else 'ies'}."

    @mcp.tool()
    def set_viewport(width: float, height: float) -> str:
        """Set the pixel size the projection is fitted to.

        **Next:** project_activities (the projection is refitted).

        Args:
            width: Viewport width in pixels (default 800).
            height: Viewport height in pixels (default 600).
        """
        try:
            v = Viewport(width=width, height=height)
        except ValidationError as e:
            return f"Error: {e}"
        state.viewport = v
        state.invalidate_downstream()
        return f"Viewport: {v.width:g}x{v.height:g}"

    @mcp.tool()
    def project_activities() -> str:
        """Fit a projection to the selected activities and project them to pixels.

        Also builds the point and segment spatial indices.
        **Requires:** load_activities.
        **Next:** densify_terrain, then build_terrain.
        """
        try:
            require_state(state, activities=True)
        except ValueError as e:
            return f"Error: {e}"

        tracks = state.selected_tracks()
        v = state.viewport
        projection = fit_projection(tracks, v.width, v.height)
        result = project_tracks(tracks, projection)

        state.invalidate_downstream()
        state.projection = projection
        state.projected = result
        state.point_index = build_point_index(result.tracks)
        state.segment_index = build_segment_index(result.tracks)

        bounds = result.altitude_bounds
        elevation = (
            f"altitude {bounds.min_altitude:.0f}m to {bounds.max_altitude:.0f}m"
            if bounds.has_altitude_data
            else "no altitude data (synthetic elevation from total gain)"
        )
        return (
            f"Projected {len(result.tracks)} track(s), {result.point_count} points "
            f"into {v.width:g}x{v.height:g}; {elevation}."
        )

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))
    def find_points_near(x: float, y: float, radius: float) -> str:
        """List projected track points within a pixel radius of (x, y).

        Uses the point index built by project_activities. Returns JSON
        objects with x, y, track_id and point_index.
        **Requires:** project_activities.

        Args:
            x, y: Query position in projected pixels.
            radius: Search radius in pixels (must be positive).
        """
        try:
            require_state(state, activities=True, projected=True)
        except ValueError as e:
            return f"Error: {e}"
        if radius <= 0:
            return "Error: radius must be positive."

        found = query_radius(state.point_index, x, y, radius)
        return json.dumps([p.model_dump() for p in found], indent=2)
