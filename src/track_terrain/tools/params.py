"""Parameter tools: set_densify_params, set_mesh_params, set_colors."""

from mcp.server.fastmcp import FastMCP

from ..state import state


def register_param_tools(mcp: FastMCP):

    @mcp.tool()
    def set_densify_params(
        method: str | None = None,
        density: float | None = None,
        max_samples: int | None = None,
        debug: bool | None = None,
    ) -> str:
        """Set densification parameters.

        **Next:** densify_terrain (re-run after changing params).

        Args:
            method: 'auto' (MLS), 'mls', 'interpolation' or 'delaunay'.
            density: Grid points per projected unit (default 10). The grid is
                coarsened automatically to stay under max_samples.
            max_samples: Cap on grid samples (default 200000).
            debug: Include diagnostics (counts, timing) in tool output.
        """
        p = state.densify_params
        for name, value in [
            ("method", method), ("density", density),
            ("max_samples", max_samples), ("debug", debug),
        ]:
            if value is not None:
                try:
                    setattr(p, name, value)
                except Exception as e:
                    return f"Error: {e}"

        state.densified = None
        state.mesh = None

        return (
            f"Densify params: method={p.method}, density={p.density:g}, "
            f"max_samples={p.max_samples}, debug={p.debug}"
        )

    @mcp.tool()
    def set_mesh_params(
        max_edge_length: float | None = None,
        trail_radius: float | None = None,
        rim: bool | None = None,
        trail_highlight: bool | None = None,
    ) -> str:
        """Set terrain mesh parameters.

        **Next:** build_terrain (re-run after changing params).

        Args:
            max_edge_length: Triangles with a longer edge (projected units)
                are dropped. Default: estimated from point spacing.
            trail_radius: Distance from a track within which vertices get the
                trail color. Default: 7.5% of the max edge length.
            rim: Extend the surface to the map edges with a flat rim.
            trail_highlight: Color vertices near the original tracks.
        """
        p = state.mesh_params
        for name, value in [
            ("max_edge_length", max_edge_length), ("trail_radius", trail_radius),
            ("rim", rim), ("trail_highlight", trail_highlight),
        ]:
            if value is not None:
                try:
                    setattr(p, name, value)
                except Exception as e:
                    return f"Error: {e}"

        state.mesh = None

        return (
            f"Mesh params: max_edge_length={p.max_edge_length or 'auto'}, "
            f"trail_radius={p.trail_radius or 'auto'}, rim={p.rim}, "
            f"trail_highlight={p.trail_highlight}"
        )

    @mcp.tool()
    def set_colors(terrain: str | None = None, trail: str | None = None) -> str:
        """Set terrain base and trail highlight colors (hex #RRGGBB).

        **Next:** build_terrain (colors are applied when the mesh is built).

        Args:
            terrain/trail: Hex color strings.
        """
        c = state.colors
        for name, value in [("terrain", terrain), ("trail", trail)]:
            if value is not None:
                try:
                    setattr(c, name, value)
                except Exception as e:
                    return f"Error: {e}"

        state.mesh = None

        return f"Colors: {c.as_dict()}"
