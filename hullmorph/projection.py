"""Displacement of hull nodes towards their skeleton beam."""

import logging
from dataclasses import dataclass

from .diagnostics import DiagnosticKind, report
from .geometry import project_onto_segment

_logger = logging.getLogger(__name__)

SCALE = "scale"
RADIUS = "radius"
MODES = (SCALE, RADIUS)


@dataclass(frozen=True)
class BoundaryRecord:
    """Position of a node before it was morphed."""

    node_id: int
    x: float
    y: float
    z: float


class Projector:
    """Move nodes along the line to their projection on a beam.

    Parameters
    ----------
    mode : str
        ``"scale"`` keeps a fraction ``parameter`` of the offset to the beam,
        ``"radius"`` places the node at distance ``parameter`` from the beam.
    parameter : float
        Scale factor or radius.
    """

    def __init__(self, mode, parameter):
        if mode not in MODES:
            raise ValueError(f"Unknown projection mode '{mode}', expected one of {MODES}")
        if mode == RADIUS and parameter < 0:
            raise ValueError(f"Radius must be non-negative, got {parameter}")
        self.mode = mode
        self.parameter = float(parameter)

    def project(self, position, p1, p2):
        """New position of a point for the beam ``(p1, p2)``.

        Returns
        -------
        new_position : Vector3
        degenerate : bool
            True in radius mode when the point lies on the beam; the point is
            then left where it is.
        """
        foot = project_onto_segment(position, p1, p2)
        offset = foot - position
        if self.mode == SCALE:
            return position + offset * (1.0 - self.parameter), False
        distance = offset.norm()
        if distance == 0.0:
            return position, True
        return position + offset * (1.0 - self.parameter / distance), False

    def apply(self, mesh, skeleton, node_targets, diagnostics=None):
        """Morph the given nodes of ``mesh`` in place.

        Parameters
        ----------
        mesh : MeshModel
            Hull mesh; node positions are overwritten.
        skeleton : MeshModel
            Mesh holding the beams and their nodes.
        node_targets : dict
            Node id to beam id.
        diagnostics : list, optional
            Receives a ``DEGENERATE_PROJECTION`` entry for every node left in
            place in radius mode.

        Returns
        -------
        list of BoundaryRecord
            Original positions, in ascending node id order.
        """
        records = []
        for node_id in sorted(node_targets):
            node = mesh.fetch_by_id("node", node_id)
            beam = skeleton.fetch_by_id("beam", node_targets[node_id])
            p1, p2 = skeleton.positions([beam.n1, beam.n2])
            new_position, degenerate = self.project(node.position, p1, p2)
            if degenerate and diagnostics is not None:
                report(
                    diagnostics,
                    DiagnosticKind.DEGENERATE_PROJECTION,
                    f"Node {node_id} lies on beam {beam.id}; left in place",
                    node_id,
                )
            records.append(BoundaryRecord(node_id, *node.position))
            node.position = new_position
        _logger.info(f"Projected {len(records)} nodes in {self.mode} mode")
        return records
