"""Prerequisite checking helpers for MCP tools."""


def require_state(
    state, *, activities: bool = False, projected: bool = False, densified: bool = False,
) -> None:
    """Raise ValueError with a descriptive message if required state is not set.

    Usage in a tool:
        try:
            require_state(state, activities=True, projected=True)
        except ValueError as e:
            return f"Error: {e}"
    """
    if activities and not state.selected_ids:
        raise ValueError(
            "Load activities first with load_activities (or select some with select_activities)."
        )
    if projected and state.projected is None:
        raise ValueError(
            "Project the selected activities first with project_activities."
        )
    if densified and state.densified is None:
        raise ValueError(
            "Densify the terrain first with densify_terrain."
        )
