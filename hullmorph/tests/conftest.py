"""Shared pytest fixtures for hullmorph tests."""

import math

import pytest

from hullmorph.geometry import Vector3
from hullmorph.mesh import BeamElement, MeshModel, Node, ShellElement

N_AROUND = 8


def build_mesh(nodes=None, shells=None, beams=None):
    """Create a MeshModel from plain dictionaries.

    Parameters
    ----------
    nodes : dict
        Node id to (x, y, z).
    shells : dict
        Shell id to list of node ids.
    beams : dict
        Beam id to (n1, n2).
    """
    mesh = MeshModel()
    for nid, xyz in (nodes or {}).items():
        mesh.add_entity(Node(nid, Vector3(*xyz)))
    for sid, node_ids in (shells or {}).items():
        mesh.add_entity(ShellElement(sid, 1, list(node_ids)))
    for bid, (n1, n2) in (beams or {}).items():
        mesh.add_entity(BeamElement(bid, 2, n1, n2))
    return mesh


@pytest.fixture
def mesh_factory():
    """Return the :func:`build_mesh` helper."""
    return build_mesh


@pytest.fixture
def strip_meshes():
    """Two triangles in the plane z=1 below a single beam at z=2.

    Both triangles have +z normals, so they resolve to beam 1 without flip.
    """
    hull = build_mesh(
        nodes={1: (0, 0, 1), 2: (1, 0, 1), 3: (0, 1, 1), 4: (1, 1, 1)},
        shells={1: [1, 2, 3], 2: [2, 4, 3]},
    )
    skeleton = build_mesh(
        nodes={101: (-1, 0.5, 2), 102: (2, 0.5, 2)},
        beams={1: (101, 102)},
    )
    return hull, skeleton


def tube_nodes():
    """Three rings of nodes at x=0, 1, 2 around the x axis, radius 1."""
    nodes = {}
    for ring in range(3):
        for k in range(N_AROUND):
            phi = 2 * math.pi * k / N_AROUND
            nodes[ring * N_AROUND + k + 1] = (float(ring), math.cos(phi), math.sin(phi))
    return nodes


def tube_shells():
    """Quads between consecutive rings, ordered so their normals point inwards."""
    shells = {}
    for segment in range(2):
        for k in range(N_AROUND):
            k1 = (k + 1) % N_AROUND
            a = segment * N_AROUND
            b = (segment + 1) * N_AROUND
            shells[segment * N_AROUND + k + 1] = [
                a + k + 1,
                b + k + 1,
                b + k1 + 1,
                a + k1 + 1,
            ]
    return shells


@pytest.fixture
def tube_meshes():
    """A two-segment tube around a two-beam skeleton on the x axis.

    Shells 1-8 surround beam 1 (x in [0, 1]) and shells 9-16 surround beam 2
    (x in [1, 2]); the nodes of the middle ring (9-16) are shared by both.
    """
    hull = build_mesh(nodes=tube_nodes(), shells=tube_shells())
    skeleton = build_mesh(
        nodes={1001: (0, 0, 0), 1002: (1, 0, 0), 1003: (2, 0, 0)},
        beams={1: (1001, 1002), 2: (1002, 1003)},
    )
    return hull, skeleton


@pytest.fixture
def two_target_meshes():
    """Two triangles sharing node 3, each above its own beam.

    Shell 1 resolves to beam 10 and shell 2 to beam 20.
    """
    hull = build_mesh(
        nodes={
            1: (0, 0, 0),
            2: (1, 0, 0),
            3: (1, 1, 0),
            4: (2, 1, 0),
            5: (2, 2, 0),
        },
        shells={1: [1, 2, 3], 2: [3, 4, 5]},
    )
    skeleton = build_mesh(
        nodes={101: (0, 0, 1), 102: (1, 0, 1), 201: (2, 2, 1), 202: (3, 2, 1)},
        beams={10: (101, 102), 20: (201, 202)},
    )
    return hull, skeleton


@pytest.fixture
def unreachable_meshes():
    """Shell 1 faces away from the only beam, shell 2 faces it.

    The beam lies on the axis x=y=1 between the two shells, exactly behind
    shell 1, so shell 1 can never be resolved.
    """
    hull = build_mesh(
        nodes={
            1: (0, 0, 0),
            2: (3, 0, 0),
            3: (0, 3, 0),
            4: (0, 0, -3),
            5: (3, 0, -3),
            6: (0, 3, -3),
        },
        shells={1: [1, 2, 3], 2: [4, 5, 6]},
    )
    skeleton = build_mesh(
        nodes={101: (1, 1, -1), 102: (1, 1, -2)},
        beams={1: (101, 102)},
    )
    return hull, skeleton
