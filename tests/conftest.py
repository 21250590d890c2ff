import json

import pytest


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fresh_state():
    """Reset the global session state to defaults around a test."""
    from track_terrain.state import SessionState, state

    def reset():
        for name, field in SessionState.model_fields.items():
            setattr(state, name, field.get_default(call_default_factory=True))

    reset()
    yield state
    reset()


def _line(lat0, lng0, dlat, dlng, n, alt0, dalt):
    return {
        "latlng": [[lat0 + i * dlat, lng0 + i * dlng] for i in range(n)],
        "altitude": [alt0 + i * dalt for i in range(n)],
    }


@pytest.fixture
def activity_file(tmp_path):
    """JSON file with two detailed activities near Boulder and one without a route."""
    from track_terrain.core.polyline_codec import encode

    records = [
        {"id": 101, "name": "Mesa Trail", "kind": "detailed",
         "map": {"summary_polyline": encode([(40.00, -105.30), (40.03, -105.27)])},
         "streams": _line(40.00, -105.30, 0.001, 0.001, 30, 1700.0, 5.0)},
        {"id": "102", "name": "Flagstaff",
         "streams": _line(40.03, -105.30, -0.001, 0.001, 30, 1900.0, -4.0)},
        {"id": "103", "name": "Treadmill", "map": {}, "total_elevation_gain": 0},
    ]
    path = tmp_path / "activities.json"
    path.write_text(json.dumps(records))
    return path
