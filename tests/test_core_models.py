"""Tests for core return models."""
import math

import numpy as np
import pytest
from pydantic import ValidationError


class TestBoundingBox:
    def test_spans_and_center(self):
        from track_terrain.core.models import BoundingBox
        b = BoundingBox(min_lat=40.0, max_lat=41.0, min_lng=-106.0, max_lng=-104.0)
        assert (b.lat_span, b.lng_span) == (1.0, 2.0)
        assert (b.center_lat, b.center_lng) == (40.5, -105.0)
        assert not b.is_degenerate

    def test_min_must_not_exceed_max(self):
        from track_terrain.core.models import BoundingBox
        with pytest.raises(ValidationError):
            BoundingBox(min_lat=41.0, max_lat=40.0)
        with pytest.raises(ValidationError):
            BoundingBox(min_lng=10.0, max_lng=5.0)

    def test_single_point_box_is_degenerate(self):
        from track_terrain.core.models import BoundingBox
        assert BoundingBox(min_lat=1, max_lat=1, min_lng=2, max_lng=3).is_degenerate


class TestPlanarBounds:
    def test_default_is_empty(self):
        from track_terrain.core.models import PlanarBounds
        b = PlanarBounds()
        assert b.is_empty
        assert b.min_x == math.inf and b.max_x == -math.inf

    def test_width_height(self):
        from track_terrain.core.models import PlanarBounds
        b = PlanarBounds(min_x=1, max_x=4, min_y=-2, max_y=3)
        assert (b.width, b.height) == (3, 5)
        assert not b.is_empty


class TestDensificationResult:
    def test_default_is_empty(self):
        from track_terrain.core.models import DensificationResult
        r = DensificationResult()
        assert r.point_count == 0
        assert r.dense_points == []

    def test_points_must_be_n_by_3(self):
        from track_terrain.core.models import DensificationResult
        with pytest.raises(ValidationError):
            DensificationResult(points=np.zeros((4, 2)), lat_lng=np.zeros((4, 2)))

    def test_lat_lng_must_match_points(self):
        from track_terrain.core.models import DensificationResult
        with pytest.raises(ValidationError):
            DensificationResult(points=np.zeros((4, 3)), lat_lng=np.zeros((3, 2)))

    def test_dense_points(self):
        from track_terrain.core.models import DensificationResult
        r = DensificationResult(
            points=np.array([[1.0, 2.0, 3.0]]), lat_lng=np.array([[40.0, -105.0]]), method="mls",
        )
        (p,) = r.dense_points
        assert (p.x, p.y, p.z, p.lat, p.lng) == (1.0, 2.0, 3.0, 40.0, -105.0)


class TestTerrainMesh:
    def _mesh(self, **overrides):
        from track_terrain.core.models import TerrainMesh
        kwargs = dict(
            positions=np.zeros((3, 3)),
            colors=np.zeros((3, 3)),
            normals=np.tile([0.0, 0.0, 1.0], (3, 1)),
            triangles=np.array([[0, 1, 2]]),
        )
        kwargs.update(overrides)
        return TerrainMesh(**kwargs)

    def test_valid_mesh(self):
        m = self._mesh()
        assert (m.vertex_count, m.triangle_count) == (3, 1)

    def test_default_is_empty(self):
        from track_terrain.core.models import TerrainMesh
        m = TerrainMesh()
        assert (m.vertex_count, m.triangle_count) == (0, 0)

    def test_position_must_have_3_components(self):
        with pytest.raises(ValidationError):
            self._mesh(positions=np.zeros((3, 2)))

    def test_triangle_must_have_3_indices(self):
        with pytest.raises(ValidationError):
            self._mesh(triangles=np.array([[0, 1]]))

    def test_triangle_index_must_be_non_negative(self):
        with pytest.raises(ValidationError):
            self._mesh(triangles=np.array([[-1, 0, 1]]))

    def test_triangle_index_must_be_valid_vertex_index(self):
        with pytest.raises(ValidationError):
            self._mesh(triangles=np.array([[0, 1, 3]]))

    def test_colors_must_match_vertex_count(self):
        with pytest.raises(ValidationError):
            self._mesh(colors=np.zeros((2, 3)))
