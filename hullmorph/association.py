"""Association of hull shells to skeleton beams.

Each shell is mapped to the closest beam lying inside a search cone around
the shell normal. The cone starts at ``start_angle`` and is widened by
``step_angle`` until a beam is found or the half-angle reaches 180 degrees.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

import numpy as np
from tqdm import tqdm

from .diagnostics import DiagnosticKind, report
from .geometry import (
    angles_between,
    project_onto_segments,
    shell_centroid,
    shell_normal,
)

_logger = logging.getLogger(__name__)

MAX_CONE_ANGLE = 180.0


class AssociationMap:
    """Shell id to beam id mapping, with the inverse beam to shells index."""

    def __init__(self, mapping=None):
        self._targets = {}
        self._members = defaultdict(set)
        if mapping:
            for shell_id, beam_id in mapping.items():
                self.assign(shell_id, beam_id)

    def __contains__(self, shell_id):
        return shell_id in self._targets

    def __len__(self):
        return len(self._targets)

    def __iter__(self):
        return iter(sorted(self._targets))

    def __eq__(self, other):
        if not isinstance(other, AssociationMap):
            return NotImplemented
        return self._targets == other._targets

    def __repr__(self):
        return f"AssociationMap({len(self._targets)} shells, {len(self.target_ids())} targets)"

    def items(self):
        return [(s, self._targets[s]) for s in sorted(self._targets)]

    def assign(self, shell_id, beam_id):
        """Map a shell to a beam, replacing any previous target."""
        self.unassign(shell_id)
        self._targets[shell_id] = beam_id
        self._members[beam_id].add(shell_id)

    def unassign(self, shell_id):
        previous = self._targets.pop(shell_id, None)
        if previous is not None:
            self._members[previous].discard(shell_id)
            if not self._members[previous]:
                del self._members[previous]
        return previous

    def target_of(self, shell_id):
        return self._targets.get(shell_id)

    def members(self, beam_id):
        """Shell ids currently associated with a beam."""
        return frozenset(self._members.get(beam_id, ()))

    def target_ids(self):
        return sorted(self._members)

    def as_dict(self):
        return dict(self.items())

    def as_sets(self):
        """Persistable form: beam id to sorted list of shell ids."""
        return {beam_id: sorted(self._members[beam_id]) for beam_id in self.target_ids()}

    def copy(self):
        return AssociationMap(self._targets)


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one shell.

    Attributes
    ----------
    element_id : int
        Shell id.
    target_id : int or None
        Winning beam id, None when no beam was found inside the cone.
    angle : float or None
        Cone half-angle (degrees) at which the beam became eligible.
    distance : float or None
        Distance from the shell centroid to the beam.
    seeded : bool
        True when the shell was already associated and was skipped.
    """

    element_id: int
    target_id: Optional[int]
    angle: Optional[float] = None
    distance: Optional[float] = None
    seeded: bool = False

    @property
    def resolved(self):
        return self.target_id is not None


class AssociationResolver:
    """Nearest-beam search inside an adaptively widened cone.

    Parameters
    ----------
    skeleton : MeshModel
        Mesh holding the beam elements and their nodes.
    flip : bool
        Use the reversed shell normal as the cone axis.
    start_angle : float
        Initial cone half-angle in degrees, in (0, 180).
    step_angle : float
        Increment of the half-angle in degrees, positive.
    """

    def __init__(self, skeleton, flip=False, start_angle=15.0, step_angle=5.0):
        if not 0.0 < start_angle < MAX_CONE_ANGLE:
            raise ValueError(
                f"start_angle must be in (0, {MAX_CONE_ANGLE}), got {start_angle}"
            )
        if step_angle <= 0.0:
            raise ValueError(f"step_angle must be positive, got {step_angle}")
        self.flip = flip
        self.start_angle = float(start_angle)
        self.step_angle = float(step_angle)
        self.targets = skeleton.fetch_by_keyword("beam")
        self._target_ids = np.array([b.id for b in self.targets], dtype=int)
        self._starts, self._ends = skeleton.beam_endpoints(self.targets)

    def cone_angles(self):
        """Half-angles tried by the search, in order."""
        angles = []
        k = 0
        theta = self.start_angle
        while theta < MAX_CONE_ANGLE:
            angles.append(theta)
            k += 1
            theta = self.start_angle + k * self.step_angle
        return angles

    def _axis(self, shell, mesh):
        positions = mesh.positions(shell.defined_nodes())
        centroid = shell_centroid(positions)
        normal = shell_normal(mesh.positions(shell.corner_nodes()))
        if self.flip:
            normal = -normal
        return centroid, normal

    def resolve(self, shell, mesh, association=None):
        """Find the beam a shell maps to.

        Parameters
        ----------
        shell : ShellElement
            Element to resolve.
        mesh : MeshModel
            Hull mesh holding the element's nodes.
        association : AssociationMap, optional
            When given, a shell already present is skipped, and a newly
            resolved shell is recorded in it.

        Returns
        -------
        Resolution
        """
        if association is not None and shell.id in association:
            return Resolution(shell.id, association.target_of(shell.id), seeded=True)

        centroid, normal = self._axis(shell, mesh)
        x = centroid.to_array()
        foot = project_onto_segments(x, self._starts, self._ends)
        offsets = foot - x
        distances = np.linalg.norm(offsets, axis=1)
        angles = angles_between(offsets, normal.to_array())

        for theta in self.cone_angles():
            eligible = angles <= theta
            if not eligible.any():
                continue
            # argmin keeps the first minimum, i.e. the lowest beam id on ties
            best = int(np.argmin(np.where(eligible, distances, np.inf)))
            target_id = int(self._target_ids[best])
            if association is not None:
                association.assign(shell.id, target_id)
            return Resolution(shell.id, target_id, theta, float(distances[best]))

        return Resolution(shell.id, None)

    def resolve_all(self, mesh, association, diagnostics=None, verbose=False):
        """Resolve every shell of ``mesh`` that is not yet associated.

        Unresolved shells are reported as ``ASSOCIATION_UNRESOLVED``
        diagnostics when ``diagnostics`` is given.

        Returns
        -------
        list of Resolution
            One entry per shell, in ascending shell id order.
        """
        shells = mesh.fetch_by_keyword("shell")
        pending = sum(1 for s in shells if s.id not in association)
        _logger.info(
            f"Resolving {pending} of {len(shells)} shells against "
            f"{len(self.targets)} beams"
        )
        results = []
        for shell in tqdm(shells, desc="Associating shells", disable=not verbose):
            resolution = self.resolve(shell, mesh, association)
            if not resolution.resolved and diagnostics is not None:
                report(
                    diagnostics,
                    DiagnosticKind.ASSOCIATION_UNRESOLVED,
                    f"Shell {shell.id} has no beam within a {MAX_CONE_ANGLE:g} degree cone",
                    shell.id,
                )
            results.append(resolution)
        return results


def seed_from_sets(association, sets, beam_ids, shell_ids=None, diagnostics=None):
    """Pre-seed an association from persisted shell sets.

    Sets whose id is not a beam id are ignored. A shell listed under two beams
    keeps the later set (ascending set id) and yields a conflict diagnostic.

    Parameters
    ----------
    association : AssociationMap
        Map to fill in place.
    sets : iterable of ShellSet
        Persisted sets, keyed by beam id.
    beam_ids : collection of int
        Ids of the skeleton beams.
    shell_ids : collection of int, optional
        Ids of the hull shells; set members outside it are skipped.
    diagnostics : list, optional
        Receives the conflict diagnostics.

    Returns
    -------
    int
        Number of shells seeded.
    """
    beam_ids = set(beam_ids)
    seeded = 0
    for shell_set in sorted(sets, key=lambda s: s.id):
        if shell_set.id not in beam_ids:
            _logger.debug(f"Set {shell_set.id} does not match a beam, ignored")
            continue
        for shell_id in shell_set.element_ids:
            if shell_ids is not None and shell_id not in shell_ids:
                _logger.debug(f"Set {shell_set.id} lists unknown shell {shell_id}")
                continue
            previous = association.target_of(shell_id)
            if previous is not None and previous != shell_set.id and diagnostics is not None:
                report(
                    diagnostics,
                    DiagnosticKind.ASSOCIATION_CONFLICT,
                    f"Shell {shell_id} is stored under beams {previous} and "
                    f"{shell_set.id}; using {shell_set.id}",
                    shell_id,
                )
            if previous is None:
                seeded += 1
            association.assign(shell_id, shell_set.id)
    return seeded


def apply_overrides(association, overrides, beam_ids, diagnostics=None, shell_ids=None):
    """Force explicit shell to beam assignments over any seeded value.

    Raises ValueError for an unknown beam, or for a shell outside
    ``shell_ids`` when it is given.
    """
    beam_ids = set(beam_ids)
    for shell_id in sorted(overrides):
        beam_id = overrides[shell_id]
        if shell_ids is not None and shell_id not in shell_ids:
            raise ValueError(f"Override names unknown shell {shell_id}")
        if beam_id not in beam_ids:
            raise ValueError(f"Override for shell {shell_id} names unknown beam {beam_id}")
        previous = association.target_of(shell_id)
        if previous is not None and previous != beam_id and diagnostics is not None:
            report(
                diagnostics,
                DiagnosticKind.ASSOCIATION_CONFLICT,
                f"Override maps shell {shell_id} to beam {beam_id} instead of {previous}",
                shell_id,
            )
        association.assign(shell_id, beam_id)


def compare_with_sets(association, sets, beam_ids, diagnostics):
    """Report shells whose fresh association disagrees with persisted sets.

    The fresh association is kept. Returns the number of disagreements.
    """
    beam_ids = set(beam_ids)
    conflicts = 0
    for shell_set in sorted(sets, key=lambda s: s.id):
        if shell_set.id not in beam_ids:
            continue
        for shell_id in shell_set.element_ids:
            current = association.target_of(shell_id)
            if current is None or current == shell_set.id:
                continue
            conflicts += 1
            report(
                diagnostics,
                DiagnosticKind.ASSOCIATION_CONFLICT,
                f"Shell {shell_id} was stored under beam {shell_set.id}, "
                f"recomputed as {current}",
                shell_id,
            )
    return conflicts
