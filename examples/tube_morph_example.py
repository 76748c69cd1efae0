#!/usr/bin/env python
"""
Example: Morphing a bent tube onto its two-beam skeleton

This example builds a small hull in memory, a tube of quads wrapped around
a skeleton made of two beams, and runs the three morphing steps on it:

- association of every shell with the beam it faces
- splitting of the ring of nodes shared by both beams
- projection of the nodes halfway towards their beam

The result is written as a keyword deck with a
*BOUNDARY_PRESCRIBED_FINAL_GEOMETRY card, and the association is plotted.
"""

import math
import os
import sys

from hullmorph import MeshModel, MorphConfig, Node, ShellElement, BeamElement, morph
from hullmorph.geometry import Vector3
from hullmorph.keyword import format_boundary, write_keyword
from hullmorph.mesh import LoadCurve
from hullmorph.viz import plot_association

N_AROUND = 12
N_RINGS = 7


def build_tube():
    """
    Build a hull tube around the x axis and a skeleton bent at x=3.

    Returns
    -------
    hull, skeleton : MeshModel
    """
    hull = MeshModel()
    for ring in range(N_RINGS):
        for k in range(N_AROUND):
            phi = 2 * math.pi * k / N_AROUND
            position = Vector3(float(ring), math.cos(phi), math.sin(phi))
            hull.add_entity(Node(ring * N_AROUND + k + 1, position))

    for ring in range(N_RINGS - 1):
        for k in range(N_AROUND):
            k1 = (k + 1) % N_AROUND
            a = ring * N_AROUND
            b = (ring + 1) * N_AROUND
            # node order gives normals pointing towards the axis
            node_ids = [a + k + 1, b + k + 1, b + k1 + 1, a + k1 + 1]
            hull.add_entity(ShellElement(ring * N_AROUND + k + 1, 1, node_ids))
    hull.add_entity(LoadCurve(1, [(0.0, 0.0), (1.0, 1.0)], "morph ramp"))

    skeleton = MeshModel()
    skeleton.add_entity(Node(1001, Vector3(0.0, 0.0, 0.0)))
    skeleton.add_entity(Node(1002, Vector3(3.0, 0.0, 0.0)))
    skeleton.add_entity(Node(1003, Vector3(6.0, 0.2, 0.0)))
    skeleton.add_entity(BeamElement(1, 2, 1001, 1002))
    skeleton.add_entity(BeamElement(2, 2, 1002, 1003))
    return hull, skeleton


def main(output_dir="."):
    hull, skeleton = build_tube()
    print(f"Hull: {hull!r}")
    print(f"Skeleton: {skeleton!r}")

    config = MorphConfig(scale=0.5, load_curve_id=1, persist=True)
    result = morph(hull, skeleton, config)

    print(f"Status: {result.status}")
    for beam_id, shell_ids in result.association.as_sets().items():
        print(f"  beam {beam_id}: {len(shell_ids)} shells")
    print(f"Cloned nodes: {len(result.clones)} in {result.passes} passes")
    for diagnostic in result.diagnostics:
        print(f"  {diagnostic}")

    os.makedirs(output_dir, exist_ok=True)
    boundary = format_boundary(result.records, config.boundary_id, config.load_curve_id)
    deck = write_keyword(
        os.path.join(output_dir, "tube.morphed.k"),
        hull,
        boundary,
        header=["tube morphing example"],
    )
    print(f"Wrote {deck}")
    plot_association(
        hull, skeleton, result.association, os.path.join(output_dir, "tube.png")
    )


if __name__ == "__main__":
    main(*sys.argv[1:2])
