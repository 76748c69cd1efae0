"""
Tests for the mesh module.
"""

import pytest

from hullmorph.geometry import Vector3
from hullmorph.mesh import (
    BeamElement,
    LoadCurve,
    MeshModel,
    Node,
    ShellElement,
    ShellSet,
)


class TestShellElement:
    """Tests for the ShellElement node slots."""

    def test_slots_are_padded_to_eight(self):
        shell = ShellElement(1, 1, [1, 2, 3, 4])
        assert shell.node_ids == [1, 2, 3, 4, None, None, None, None]

    def test_too_many_slots(self):
        with pytest.raises(ValueError):
            ShellElement(1, 1, list(range(1, 10)))

    def test_degenerate_quad_nodes(self):
        shell = ShellElement(1, 1, [5, 6, 7, 7])
        assert shell.defined_nodes() == [5, 6, 7]
        assert shell.corner_nodes() == [5, 6, 7]

    def test_midside_nodes_are_not_corners(self):
        shell = ShellElement(1, 1, [1, 2, 3, 4, 5, 6, 7, 8])
        assert shell.corner_nodes() == [1, 2, 3, 4]
        assert shell.defined_nodes() == [1, 2, 3, 4, 5, 6, 7, 8]


class TestMeshModel:
    """Tests for MeshModel lookups and topology edits."""

    def test_fetch_by_keyword_is_sorted(self, mesh_factory):
        mesh = mesh_factory(nodes={3: (0, 0, 0), 1: (1, 0, 0), 2: (2, 0, 0)})
        assert [n.id for n in mesh.fetch_by_keyword("node")] == [1, 2, 3]

    def test_fetch_by_id(self, strip_meshes):
        hull, skeleton = strip_meshes
        assert hull.fetch_by_id("shell", 2).node_ids[:3] == [2, 4, 3]
        assert hull.fetch_by_id("shell", 99) is None
        assert skeleton.fetch_by_id("beam", 1) == BeamElement(1, 2, 101, 102)

    def test_unknown_kind(self):
        with pytest.raises(KeyError):
            MeshModel().fetch_by_keyword("solid")

    def test_add_entity_rejects_duplicates(self):
        mesh = MeshModel()
        mesh.add_entity(Node(1, Vector3()))
        with pytest.raises(ValueError):
            mesh.add_entity(Node(1, Vector3(1, 0, 0)))

    def test_add_entity_kinds(self):
        mesh = MeshModel()
        mesh.add_entity(LoadCurve(7, [(0.0, 0.0), (1.0, 1.0)]))
        mesh.add_entity(ShellSet(3, [1, 2]))
        assert mesh.count("curve") == 1
        assert mesh.fetch_by_id("set", 3).element_ids == [1, 2]
        with pytest.raises(TypeError):
            mesh.add_entity("not an entity")

    def test_clone_node(self, strip_meshes):
        hull, _ = strip_meshes
        clone = hull.clone_node(2)
        assert clone.id == 5
        assert clone.position == hull.fetch_by_id("node", 2).position
        hull.fetch_by_id("node", 2).position = Vector3(9, 9, 9)
        assert clone.position == Vector3(1, 0, 1)

    def test_clone_node_skips_reserved_ids(self, strip_meshes):
        hull, _ = strip_meshes
        clone = hull.clone_node(1, reserved={5, 6})
        assert clone.id == 7

    def test_clone_missing_node(self):
        with pytest.raises(KeyError):
            MeshModel().clone_node(1)

    def test_replace_node(self, mesh_factory):
        mesh = mesh_factory(
            nodes={1: (0, 0, 0), 2: (1, 0, 0), 3: (1, 1, 0), 4: (2, 2, 2)},
            shells={1: [1, 2, 3, 3]},
        )
        mesh.replace_node(1, 3, 4)
        assert mesh.fetch_by_id("shell", 1).node_ids[:4] == [1, 2, 4, 4]
        with pytest.raises(ValueError):
            mesh.replace_node(1, 3, 4)

    def test_shell_node_ids(self, strip_meshes):
        hull, skeleton = strip_meshes
        assert hull.shell_node_ids() == [1, 2, 3, 4]
        assert skeleton.shell_node_ids() == []

    def test_positions_missing_node(self, strip_meshes):
        hull, _ = strip_meshes
        with pytest.raises(KeyError):
            hull.positions([1, 42])

    def test_beam_endpoints(self, tube_meshes):
        _, skeleton = tube_meshes
        starts, ends = skeleton.beam_endpoints()
        assert starts.shape == (2, 3)
        assert starts[1].tolist() == [1.0, 0.0, 0.0]
        assert ends[1].tolist() == [2.0, 0.0, 0.0]

    def test_remove_entity(self):
        mesh = MeshModel()
        mesh.add_entity(ShellSet(4, [1]))
        assert mesh.remove_entity("set", 4) == ShellSet(4, [1])
        assert mesh.remove_entity("set", 4) is None
        assert mesh.count("set") == 0

    def test_set_shell_sets_keeps_titles(self):
        mesh = MeshModel()
        mesh.add_entity(ShellSet(1, [4], title="upper arm"))
        mesh.set_shell_sets({1: {3, 1}, 2: [5]})
        assert mesh.fetch_by_id("set", 1) == ShellSet(1, [1, 3], "upper arm")
        assert mesh.fetch_by_id("set", 2).element_ids == [5]
