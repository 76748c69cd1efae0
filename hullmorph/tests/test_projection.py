"""
Tests for the projection module.
"""

import math

import pytest

from hullmorph.diagnostics import DiagnosticKind
from hullmorph.geometry import Vector3
from hullmorph.projection import RADIUS, SCALE, BoundaryRecord, Projector

P1 = Vector3(-1, 0, 0)
P2 = Vector3(1, 0, 0)


def assert_close(actual, expected):
    for a, e in zip(actual, expected):
        assert math.isclose(a, e, abs_tol=1e-12)


class TestProjector:
    """Tests for single point projection."""

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            Projector("stretch", 0.5)

    def test_negative_radius(self):
        with pytest.raises(ValueError):
            Projector(RADIUS, -1.0)

    def test_scale_halves_the_offset(self):
        new_position, degenerate = Projector(SCALE, 0.5).project(Vector3(0, 2, 0), P1, P2)
        assert_close(new_position, (0, 1, 0))
        assert not degenerate

    def test_scale_one_is_identity(self):
        position = Vector3(0.3, 2, -1)
        new_position, _ = Projector(SCALE, 1.0).project(position, P1, P2)
        assert_close(new_position, position)

    def test_scale_zero_lands_on_beam(self):
        new_position, _ = Projector(SCALE, 0.0).project(Vector3(3, 1, 1), P1, P2)
        # the foot is clamped to the beam end
        assert_close(new_position, (1, 0, 0))

    def test_radius_sets_distance(self):
        new_position, degenerate = Projector(RADIUS, 0.5).project(
            Vector3(0.2, 3, 4), P1, P2
        )
        assert not degenerate
        assert_close(new_position, (0.2, 0.3, 0.4))

    def test_radius_equal_to_distance_is_identity(self):
        position = Vector3(0.5, 0, 2)
        new_position, _ = Projector(RADIUS, 2.0).project(position, P1, P2)
        assert_close(new_position, position)

    def test_radius_can_push_outwards(self):
        new_position, _ = Projector(RADIUS, 3.0).project(Vector3(0, 1, 0), P1, P2)
        assert_close(new_position, (0, 3, 0))

    def test_point_on_beam_is_degenerate(self):
        position = Vector3(0.25, 0, 0)
        new_position, degenerate = Projector(RADIUS, 1.0).project(position, P1, P2)
        assert degenerate
        assert new_position == position


class TestApply:
    """Tests for morphing a mesh in place."""

    def test_records_original_positions(self, mesh_factory):
        hull = mesh_factory(
            nodes={2: (0, 2, 0), 1: (0.5, 0, 4), 3: (9, 9, 9)},
            shells={1: [1, 2, 3]},
        )
        skeleton = mesh_factory(nodes={10: (-1, 0, 0), 11: (1, 0, 0)}, beams={7: (10, 11)})
        records = Projector(SCALE, 0.5).apply(hull, skeleton, {2: 7, 1: 7})

        assert records == [BoundaryRecord(1, 0.5, 0, 4), BoundaryRecord(2, 0, 2, 0)]
        assert_close(hull.fetch_by_id("node", 2).position, (0, 1, 0))
        assert_close(hull.fetch_by_id("node", 1).position, (0.5, 0, 2))
        # nodes without a target are not touched
        assert hull.fetch_by_id("node", 3).position == Vector3(9, 9, 9)

    def test_degenerate_nodes_are_reported(self, mesh_factory):
        hull = mesh_factory(nodes={1: (0, 0, 0), 2: (0, 1, 0)}, shells={1: [1, 2]})
        skeleton = mesh_factory(nodes={10: (-1, 0, 0), 11: (1, 0, 0)}, beams={7: (10, 11)})
        diagnostics = []
        records = Projector(RADIUS, 0.5).apply(hull, skeleton, {1: 7, 2: 7}, diagnostics)

        assert len(records) == 2
        assert hull.fetch_by_id("node", 1).position == Vector3(0, 0, 0)
        assert_close(hull.fetch_by_id("node", 2).position, (0, 0.5, 0))
        assert [d.kind for d in diagnostics] == [DiagnosticKind.DEGENERATE_PROJECTION]
        assert diagnostics[0].entity_id == 1
