"""Splitting of nodes shared by shells that map to different beams.

A node whose shells are associated with several beams cannot be projected
unambiguously. The node is kept by its largest group of shells and cloned for
every other group, the shells of those groups being rewired to the clones.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import List

import networkx as nx

_logger = logging.getLogger(__name__)

DEFAULT_MAX_PASSES = 100


class SegmentationError(RuntimeError):
    """Raised when node splitting does not reach a consistent state."""


@dataclass(frozen=True)
class Clone:
    """A node copy created during segmentation."""

    source_id: int
    clone_id: int
    target_id: int
    element_ids: tuple


@dataclass
class SegmentationReport:
    """Result of :meth:`TopologySegmenter.segment`.

    The mesh and association are the objects passed in, mutated in place.
    """

    mesh: object
    association: object
    clones: List[Clone] = field(default_factory=list)
    passes: int = 0


def build_incidence_graph(mesh):
    """Bipartite graph linking ``("node", id)`` to ``("shell", id)`` vertices."""
    graph = nx.Graph()
    for shell in mesh.fetch_by_keyword("shell"):
        graph.add_node(("shell", shell.id))
        for node_id in shell.defined_nodes():
            graph.add_edge(("node", node_id), ("shell", shell.id))
    return graph


def elements_of_node(mesh):
    """Index of node id to the set of shell ids that reference it."""
    graph = build_incidence_graph(mesh)
    index = {}
    for kind, node_id in graph.nodes:
        if kind == "node":
            index[node_id] = {sid for _, sid in graph.neighbors(("node", node_id))}
    return index


def target_groups(shell_ids, association):
    """Group shells by their beam. Unresolved shells are left out."""
    groups = defaultdict(list)
    for shell_id in sorted(shell_ids):
        target = association.target_of(shell_id)
        if target is not None:
            groups[target].append(shell_id)
    return dict(groups)


def conflicting_nodes(index, association):
    """Node ids whose shells reach more than one beam, ascending."""
    return [
        node_id
        for node_id in sorted(index)
        if len(target_groups(index[node_id], association)) > 1
    ]


def run_fixed_point(step, count_conflicts, max_passes):
    """Apply ``step`` until ``count_conflicts`` returns zero.

    Parameters
    ----------
    step : callable
        Performs one pass; called without arguments.
    count_conflicts : callable
        Returns the number of remaining conflicts.
    max_passes : int
        Largest number of passes allowed.

    Returns
    -------
    int
        Number of passes performed.

    Raises
    ------
    SegmentationError
        If conflicts remain after ``max_passes`` passes.
    """
    passes = 0
    while True:
        remaining = count_conflicts()
        if remaining == 0:
            return passes
        if passes >= max_passes:
            raise SegmentationError(
                f"{remaining} conflicting nodes remain after {passes} passes"
            )
        step()
        passes += 1


def verify_segmentation(mesh, association):
    """Raise SegmentationError if any node still maps to several beams."""
    remaining = conflicting_nodes(elements_of_node(mesh), association)
    if remaining:
        raise SegmentationError(
            f"Nodes still shared between beams after segmentation: {remaining[:10]}"
        )


class TopologySegmenter:
    """Clone shared nodes until every node belongs to a single beam.

    Parameters
    ----------
    max_passes : int
        Bound on the number of fixed-point passes.
    reserved_ids : collection of int
        Node ids that clones must not use, e.g. the nodes of a separate
        skeleton deck.
    """

    def __init__(self, max_passes=DEFAULT_MAX_PASSES, reserved_ids=()):
        self.max_passes = max_passes
        self.reserved_ids = frozenset(reserved_ids)

    def needs_segmentation(self, mesh, association):
        return bool(conflicting_nodes(elements_of_node(mesh), association))

    def _split_pass(self, mesh, association, clones):
        index = elements_of_node(mesh)
        for node_id in conflicting_nodes(index, association):
            groups = target_groups(index[node_id], association)
            keeper = min(groups, key=lambda t: (-len(groups[t]), t))
            for target in sorted(groups):
                if target == keeper:
                    continue
                clone = mesh.clone_node(node_id, reserved=self.reserved_ids)
                for shell_id in groups[target]:
                    mesh.replace_node(shell_id, node_id, clone.id)
                clones.append(
                    Clone(node_id, clone.id, target, tuple(groups[target]))
                )
                _logger.debug(
                    f"Node {node_id} cloned as {clone.id} for beam {target} "
                    f"({len(groups[target])} shells), kept by beam {keeper}"
                )

    def segment(self, mesh, association):
        """Split the shared nodes of ``mesh`` in place.

        Returns
        -------
        SegmentationReport
        """
        clones = []

        def count():
            return len(conflicting_nodes(elements_of_node(mesh), association))

        passes = run_fixed_point(
            lambda: self._split_pass(mesh, association, clones),
            count,
            self.max_passes,
        )
        _logger.info(f"Segmentation created {len(clones)} nodes in {passes} passes")
        return SegmentationReport(mesh, association, clones, passes)


def target_regions(mesh, association):
    """Number of connected surface patches per beam.

    Patches are connected components of the shell/node incidence graph
    restricted to the shells of one beam.
    """
    graph = build_incidence_graph(mesh)
    regions = {}
    for beam_id in association.target_ids():
        shells = [("shell", s) for s in association.members(beam_id)]
        vertices = set(shells)
        for vertex in shells:
            if vertex in graph:
                vertices.update(graph.neighbors(vertex))
        regions[beam_id] = nx.number_connected_components(graph.subgraph(vertices))
    return regions
