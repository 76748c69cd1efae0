"""Core morphing pipeline: association, segmentation and projection."""

import logging
from dataclasses import dataclass, field
from typing import List

from .association import (
    AssociationMap,
    AssociationResolver,
    apply_overrides,
    compare_with_sets,
    seed_from_sets,
)
from .config import MorphConfig
from .diagnostics import Diagnostic, DiagnosticKind, report
from .projection import BoundaryRecord, Projector
from .segmentation import (
    Clone,
    TopologySegmenter,
    conflicting_nodes,
    elements_of_node,
    target_groups,
    verify_segmentation,
)

_logger = logging.getLogger(__name__)

MORPHED = "morphed"
ASSOCIATION_ONLY = "association_only"


class InputValidationError(ValueError):
    """Raised when the input meshes cannot be morphed."""


@dataclass
class MorphResult:
    """Outcome of :func:`morph`.

    Attributes
    ----------
    status : str
        ``"morphed"``, or ``"association_only"`` when neither scale nor radius
        was configured and the hull was left untouched.
    association : AssociationMap
        Final shell to beam mapping.
    records : list of BoundaryRecord
        Original positions of the projected nodes, ascending node id.
    clones : list of Clone
        Nodes created by the segmentation.
    diagnostics : list of Diagnostic
        Recoverable conditions met during the run.
    unresolved : list of int
        Shells that could not be associated.
    passes : int
        Segmentation passes performed.
    shared_nodes : list of int
        In association-only runs, the nodes that segmentation would split.
    """

    status: str
    association: AssociationMap
    records: List[BoundaryRecord] = field(default_factory=list)
    clones: List[Clone] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    unresolved: List[int] = field(default_factory=list)
    passes: int = 0
    shared_nodes: List[int] = field(default_factory=list)

    @property
    def morphed(self):
        return self.status == MORPHED


def validate_inputs(hull, skeleton):
    """Check that both meshes hold what the morphing needs.

    Raises
    ------
    InputValidationError
        If the hull has no shells, the skeleton has no beams, or an element
        references a node that does not exist.
    """
    if hull.count("shell") == 0:
        raise InputValidationError("The hull mesh contains no shell elements")
    if skeleton.count("beam") == 0:
        raise InputValidationError("The skeleton mesh contains no beam elements")
    for beam in skeleton.fetch_by_keyword("beam"):
        for node_id in (beam.n1, beam.n2):
            if skeleton.fetch_by_id("node", node_id) is None:
                raise InputValidationError(
                    f"Beam {beam.id} references missing node {node_id}"
                )
    for shell in hull.fetch_by_keyword("shell"):
        nodes = shell.defined_nodes()
        if len(nodes) < 2:
            raise InputValidationError(f"Shell {shell.id} has fewer than two nodes")
        for node_id in nodes:
            if hull.fetch_by_id("node", node_id) is None:
                raise InputValidationError(
                    f"Shell {shell.id} references missing node {node_id}"
                )


def node_targets(hull, association):
    """Beam of every node reachable through associated shells.

    Nodes referenced only by unassociated shells are left out.
    """
    targets = {}
    for node_id, shell_ids in elements_of_node(hull).items():
        groups = target_groups(shell_ids, association)
        if len(groups) == 1:
            (targets[node_id],) = groups
    return targets


def check_load_curve(hull, load_curve_id, diagnostics):
    """Warn when the load curve driving the boundary is not defined."""
    if load_curve_id is None:
        report(
            diagnostics,
            DiagnosticKind.MISSING_LOAD_CURVE,
            "No load curve given for the prescribed final geometry",
        )
        return False
    if hull.fetch_by_id("curve", load_curve_id) is None:
        report(
            diagnostics,
            DiagnosticKind.MISSING_LOAD_CURVE,
            f"Load curve {load_curve_id} is not defined in the hull deck",
            load_curve_id,
        )
        return False
    return True


def persist_association(hull, association, beam_ids):
    """Store the association in the hull as one shell set per beam.

    Stored sets keyed by a beam that no longer has any shell are removed, so
    a later run seeded from the sets reproduces ``association`` exactly.
    Sets whose id is not a beam id are left alone.
    """
    members = association.as_sets()
    for set_id in hull.ids("set"):
        if set_id in beam_ids and set_id not in members:
            hull.remove_entity("set", set_id)
            _logger.info(f"Removed stale shell set {set_id}")
    hull.set_shell_sets(members)


def associate(hull, skeleton, config, overrides=None, diagnostics=None):
    """Build the shell to beam association.

    Persisted sets of the hull are used as seeds unless ``config.force`` is
    set, in which case they are only compared with the fresh result.

    Returns
    -------
    association : AssociationMap
    unresolved : list of int
    """
    if diagnostics is None:
        diagnostics = []
    beam_ids = skeleton.ids("beam")
    shell_ids = set(hull.ids("shell"))
    sets = hull.fetch_by_keyword("set")
    association = AssociationMap()

    if not config.force:
        seeded = seed_from_sets(association, sets, beam_ids, shell_ids, diagnostics)
        if seeded:
            _logger.info(f"Reusing {seeded} stored associations")
    if overrides:
        apply_overrides(association, overrides, beam_ids, diagnostics, shell_ids)

    resolver = AssociationResolver(
        skeleton,
        flip=config.flip,
        start_angle=config.start_angle,
        step_angle=config.step_angle,
    )
    resolutions = resolver.resolve_all(hull, association, diagnostics, config.verbose)
    unresolved = [r.element_id for r in resolutions if not r.resolved]

    if config.force and sets:
        compare_with_sets(association, sets, beam_ids, diagnostics)
    return association, unresolved


def morph(hull, skeleton=None, config=None, overrides=None):
    """Map a hull onto a skeleton and morph its nodes.

    Parameters
    ----------
    hull : MeshModel
        Shell mesh; mutated in place (clones, rewired shells, new positions,
        and shell sets when ``config.persist`` is set).
    skeleton : MeshModel, optional
        Mesh holding the beams. Defaults to ``hull``.
    config : MorphConfig, optional
        Run settings. Defaults to ``MorphConfig()``, which only associates.
        Without scale or radius the run stops before segmentation, leaving
        nodes and shells untouched; the nodes that would be split are only
        listed in ``MorphResult.shared_nodes``.
    overrides : dict, optional
        Explicit shell id to beam id assignments.

    Returns
    -------
    MorphResult

    Raises
    ------
    InputValidationError
        If the meshes cannot be morphed; nothing is modified.
    SegmentationError
        If node splitting does not converge.
    """
    if skeleton is None:
        skeleton = hull
    if config is None:
        config = MorphConfig()
    config.validate()
    validate_inputs(hull, skeleton)

    diagnostics = []
    association, unresolved = associate(hull, skeleton, config, overrides, diagnostics)
    _logger.info(
        f"Associated {len(association)} shells with "
        f"{len(association.target_ids())} beams, {len(unresolved)} unresolved"
    )

    if config.persist:
        persist_association(hull, association, set(skeleton.ids("beam")))

    if config.mode is None:
        shared = conflicting_nodes(elements_of_node(hull), association)
        _logger.info(
            f"No scale or radius given, stopping after association; "
            f"{len(shared)} nodes would be split"
        )
        return MorphResult(
            ASSOCIATION_ONLY,
            association,
            diagnostics=diagnostics,
            unresolved=unresolved,
            shared_nodes=shared,
        )

    reserved = set(skeleton.ids("node")) if skeleton is not hull else set()
    segmenter = TopologySegmenter(config.max_segmentation_passes, reserved)
    segmentation = segmenter.segment(hull, association)
    verify_segmentation(hull, association)

    check_load_curve(hull, config.load_curve_id, diagnostics)

    projector = Projector(config.mode, config.parameter)
    records = projector.apply(
        hull, skeleton, node_targets(hull, association), diagnostics
    )
    return MorphResult(
        MORPHED,
        association,
        records=records,
        clones=segmentation.clones,
        diagnostics=diagnostics,
        unresolved=unresolved,
        passes=segmentation.passes,
    )
