"""In-memory mesh model: nodes, shell and beam elements, curves and sets."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from .geometry import Vector3

SHELL_SLOTS = 8
CORNER_SLOTS = 4

ENTITY_KINDS = ("node", "shell", "beam", "curve", "set")


@dataclass
class Node:
    """Mesh node. The position is overwritten in place by the projection."""

    id: int
    position: Vector3


@dataclass
class ShellElement:
    """Surface element with up to eight node slots.

    Attributes
    ----------
    id : int
        Element id.
    part_id : int
        Part the element belongs to.
    node_ids : list of int or None
        Eight positional slots; unset slots are None.
    """

    id: int
    part_id: int
    node_ids: List[Optional[int]] = field(default_factory=lambda: [None] * SHELL_SLOTS)

    def __post_init__(self):
        slots = list(self.node_ids)
        if len(slots) > SHELL_SLOTS:
            raise ValueError(
                f"Shell {self.id} has {len(slots)} node slots, at most {SHELL_SLOTS}"
            )
        self.node_ids = slots + [None] * (SHELL_SLOTS - len(slots))

    def defined_nodes(self) -> List[int]:
        """Distinct defined node ids, in slot order."""
        seen = []
        for nid in self.node_ids:
            if nid is not None and nid not in seen:
                seen.append(nid)
        return seen

    def corner_nodes(self) -> List[int]:
        """Distinct defined node ids of the corner slots 1-4, in slot order."""
        seen = []
        for nid in self.node_ids[:CORNER_SLOTS]:
            if nid is not None and nid not in seen:
                seen.append(nid)
        return seen


@dataclass(frozen=True)
class BeamElement:
    """Skeleton segment between nodes ``n1`` and ``n2``."""

    id: int
    part_id: int
    n1: int
    n2: int


@dataclass
class LoadCurve:
    """Load curve definition; only the id is used by the morphing."""

    id: int
    points: List[Tuple[float, float]] = field(default_factory=list)
    title: Optional[str] = None


@dataclass
class ShellSet:
    """List of shell element ids (``*SET_SHELL_LIST``)."""

    id: int
    element_ids: List[int] = field(default_factory=list)
    title: Optional[str] = None


@dataclass
class RawBlock:
    """Keyword block that is kept verbatim."""

    keyword: str
    lines: List[str] = field(default_factory=list)


class MeshModel:
    """Container for the entities of a keyword deck.

    Entities are stored per kind and keyed by id. All sequences returned by
    the model are sorted by ascending id so that every consumer iterates in a
    reproducible order.
    """

    def __init__(self):
        self._entities: Dict[str, dict] = {kind: {} for kind in ENTITY_KINDS}
        self.raw_blocks: List[RawBlock] = []

    def __repr__(self):
        counts = ", ".join(f"{k}={len(v)}" for k, v in self._entities.items())
        return f"MeshModel({counts})"

    @staticmethod
    def _kind_of(entity):
        if isinstance(entity, Node):
            return "node"
        if isinstance(entity, ShellElement):
            return "shell"
        if isinstance(entity, BeamElement):
            return "beam"
        if isinstance(entity, LoadCurve):
            return "curve"
        if isinstance(entity, ShellSet):
            return "set"
        raise TypeError(f"Unsupported entity type: {type(entity).__name__}")

    def _table(self, kind):
        if kind not in self._entities:
            raise KeyError(f"Unknown entity kind '{kind}', expected one of {ENTITY_KINDS}")
        return self._entities[kind]

    def fetch_by_keyword(self, kind):
        """All entities of a kind, in ascending id order."""
        table = self._table(kind)
        return [table[i] for i in sorted(table)]

    def fetch_by_id(self, kind, entity_id):
        """Entity of a kind with the given id, or None."""
        return self._table(kind).get(entity_id)

    def ids(self, kind):
        return sorted(self._table(kind))

    def count(self, kind):
        return len(self._table(kind))

    def add_entity(self, entity):
        """Add an entity; ids must be unique within their kind."""
        table = self._table(self._kind_of(entity))
        if entity.id in table:
            raise ValueError(
                f"Duplicate {self._kind_of(entity)} id {entity.id} in mesh"
            )
        table[entity.id] = entity
        return entity

    def remove_entity(self, kind, entity_id):
        """Remove an entity by id; returns it, or None if it was absent."""
        return self._table(kind).pop(entity_id, None)

    def max_node_id(self):
        nodes = self._entities["node"]
        return max(nodes) if nodes else 0

    def clone_node(self, node_id, reserved=()):
        """Copy a node under a fresh id.

        Parameters
        ----------
        node_id : int
            Id of the node to copy.
        reserved : collection of int, optional
            Ids that must not be allocated even though they are not nodes of
            this mesh (for example the nodes of a separate skeleton deck).

        Returns
        -------
        Node
            The new node, already added to the mesh. Its id is strictly
            greater than the largest node id at clone time.
        """
        source = self.fetch_by_id("node", node_id)
        if source is None:
            raise KeyError(f"Cannot clone missing node {node_id}")
        new_id = self.max_node_id() + 1
        while new_id in self._entities["node"] or new_id in reserved:
            new_id += 1
        return self.add_entity(Node(new_id, source.position))

    def replace_node(self, shell_id, old_id, new_id):
        """Rewire every slot of a shell that references ``old_id``."""
        shell = self.fetch_by_id("shell", shell_id)
        if shell is None:
            raise KeyError(f"Shell {shell_id} not found")
        if old_id not in shell.node_ids:
            raise ValueError(f"Shell {shell_id} does not reference node {old_id}")
        shell.node_ids = [new_id if nid == old_id else nid for nid in shell.node_ids]

    def positions(self, node_ids):
        """Positions of the given nodes as a list of Vector3."""
        nodes = self._entities["node"]
        missing = [nid for nid in node_ids if nid not in nodes]
        if missing:
            raise KeyError(f"Nodes not found in mesh: {missing}")
        return [nodes[nid].position for nid in node_ids]

    def beam_endpoints(self, beams=None):
        """End points of the beams as two arrays of shape (T, 3)."""
        if beams is None:
            beams = self.fetch_by_keyword("beam")
        starts = np.array([self.positions([b.n1])[0].to_array() for b in beams])
        ends = np.array([self.positions([b.n2])[0].to_array() for b in beams])
        return starts.reshape(-1, 3), ends.reshape(-1, 3)

    def shell_node_ids(self):
        """All node ids referenced by shell elements, ascending."""
        ids = set()
        for shell in self._entities["shell"].values():
            ids.update(shell.defined_nodes())
        return sorted(ids)

    def set_shell_sets(self, members):
        """Insert or replace shell sets.

        Parameters
        ----------
        members : dict
            Mapping of set id to an iterable of shell ids.
        """
        table = self._entities["set"]
        for set_id in sorted(members):
            previous = table.get(set_id)
            title = previous.title if previous is not None else None
            table[set_id] = ShellSet(set_id, sorted(members[set_id]), title)
