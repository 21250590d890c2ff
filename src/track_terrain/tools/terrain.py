"""Terrain tools: densify_terrain, build_terrain, list_densify_methods."""

import json
import logging

from mcp.server.fastmcp import Context, FastMCP
from mcp.types import ToolAnnotations

from ..state import state
from ..core.densify import available_methods, densify, resolve_method, METHODS
from ..core.models import DensificationResult
from ..core.terrain import build_mesh
from ..core.tracks import projected_bounds
from ._prereqs import require_state

logger = logging.getLogger(__name__)

RIM_PADDING = 50.0


def _densify_selected(method: str, density: float) -> tuple[DensificationResult, bool]:
    """Densify the projected selection, consulting the terrain cache first.

    Returns (result, cache_hit).
    """
    p = state.densify_params
    key = state.cache_key(resolve_method(method), density)
    cached = state.cache.get(key)
    if cached is not None:
        logger.info("Terrain cache hit for %s", key)
        diagnostics = [
            f"Method: {method} (cached {cached.method} result)",
            f"Density: {density}",
            f"Dense points: {cached.point_count}",
        ] if p.debug else []
        return cached.model_copy(update={"diagnostics": diagnostics}), True

    result = densify(
        state.projected.tracks,
        method=method,
        density=density,
        debug=p.debug,
        max_samples=p.max_samples,
        altitude_source="z",
        projection=state.projection,
    )
    state.cache.put(key, result)
    return result, False


def register_terrain_tools(mcp: FastMCP):

    @mcp.tool()
    def densify_terrain(method: str | None = None, density: float | None = None) -> str:
        """Densify the projected activities into a regular grid of altitude samples.

        Results are cached per (selection, method, density, viewport); asking
        again for a computed combination returns the cached points.
        **Requires:** project_activities.
        **Next:** build_terrain.

        Args:
            method: Override the configured method ('auto', 'mls',
                'interpolation', 'delaunay').
            density: Override the configured density (points per unit).
        """
        try:
            require_state(state, activities=True, projected=True)
        except ValueError as e:
            return f"Error: {e}"

        p = state.densify_params
        method = method or p.method
        density = density if density is not None else p.density
        if method != "auto" and method not in METHODS:
            return f"Error: Unknown method '{method}'. Use one of: auto, {', '.join(METHODS)}."
        if density <= 0:
            return "Error: density must be positive."

        result, hit = _densify_selected(method, density)
        state.densified = result
        state.mesh = None

        lines = [
            f"Densified with {result.method}: {result.point_count} points"
            + (" (cached)" if hit else "")
        ]
        if not state.projected.has_altitude_data:
            lines.append("No altitude data in the selection; terrain is empty.")
        if result.diagnostics:
            lines.extend(result.diagnostics)
        return "\n".join(lines)

    @mcp.tool()
    async def build_terrain(ctx: Context) -> str:
        """Build the colored terrain surface mesh.

        Densifies first with the configured parameters if needed.
        **Requires:** project_activities.
        **Next:** get_status.
        """
        try:
            require_state(state, activities=True, projected=True)
        except ValueError as e:
            return f"Error: {e}"

        total = 2
        current = 0
        if state.densified is None:
            p = state.densify_params
            state.densified, _ = _densify_selected(p.method, p.density)
        current += 1
        await ctx.report_progress(current, total)

        mp = state.mesh_params
        tracks = state.projected.tracks
        state.mesh = build_mesh(
            state.densified,
            projected_tracks=tracks,
            segment_index=state.segment_index,
            map_bounds=projected_bounds(tracks, padding=RIM_PADDING) if mp.rim else None,
            max_edge_length=mp.max_edge_length,
            trail_radius=mp.trail_radius,
            base_color=state.colors.terrain,
            trail_color=state.colors.trail,
            trail_highlight=mp.trail_highlight,
        )
        current += 1
        await ctx.report_progress(current, total)

        mesh = state.mesh
        if mesh.triangle_count == 0:
            return (
                f"Terrain mesh is empty: {state.densified.point_count} dense point(s) "
                "could not be triangulated."
            )
        return (
            f"Terrain built: {mesh.vertex_count} vertices, {mesh.triangle_count} triangles, "
            f"max edge {mesh.max_edge_length:.2f}"
        )

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))
    def list_densify_methods() -> str:
        """List the available densification methods with descriptions."""
        return json.dumps(available_methods(), indent=2)
