"""Vector and segment geometry used by the association and projection steps."""

import math
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Vector3:
    """Immutable 3D vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, factor: float) -> "Vector3":
        return Vector3(self.x * factor, self.y * factor, self.z * factor)

    __rmul__ = __mul__

    def __neg__(self) -> "Vector3":
        return Vector3(-self.x, -self.y, -self.z)

    def __iter__(self):
        yield self.x
        yield self.y
        yield self.z

    def dot(self, other: "Vector3") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: "Vector3") -> "Vector3":
        return Vector3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def norm(self) -> float:
        return math.sqrt(self.dot(self))

    def distance(self, other: "Vector3") -> float:
        return (self - other).norm()

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    @classmethod
    def from_array(cls, values) -> "Vector3":
        x, y, z = (float(v) for v in values)
        return cls(x, y, z)


def project_onto_segment(x, p1, p2):
    """Orthogonal projection of a point onto a segment, clamped to its extent.

    Parameters
    ----------
    x : Vector3
        Point to project.
    p1, p2 : Vector3
        Segment end points.

    Returns
    -------
    Vector3
        Closest point of the segment. A zero-length segment projects onto ``p1``.
    """
    axis = p2 - p1
    length_sq = axis.dot(axis)
    if length_sq == 0.0:
        return p1
    lam = (x - p1).dot(axis) / length_sq
    lam = min(max(lam, 0.0), 1.0)
    return p1 + axis * lam


def project_onto_segments(x, starts, ends):
    """Vectorised :func:`project_onto_segment` over many segments.

    Parameters
    ----------
    x : ndarray of shape (3,)
        Point to project.
    starts, ends : ndarray of shape (T, 3)
        Segment end points.

    Returns
    -------
    ndarray of shape (T, 3)
        Clamped projection of ``x`` onto every segment.
    """
    axes = ends - starts
    length_sq = np.einsum("ij,ij->i", axes, axes)
    lam = np.zeros(len(starts))
    nonzero = length_sq > 0.0
    lam[nonzero] = (
        np.einsum("ij,ij->i", x - starts[nonzero], axes[nonzero]) / length_sq[nonzero]
    )
    lam = np.clip(lam, 0.0, 1.0)
    return starts + lam[:, None] * axes


def angle_between(a, b):
    """Angle in degrees between two Vector3, computed with atan2."""
    return math.degrees(math.atan2(a.cross(b).norm(), a.dot(b)))


def angles_between(vectors, direction):
    """Angles in degrees between each row of ``vectors`` and ``direction``."""
    direction = np.asarray(direction, dtype=float)
    crosses = np.cross(vectors, direction)
    sines = np.linalg.norm(crosses, axis=1)
    cosines = vectors @ direction
    return np.degrees(np.arctan2(sines, cosines))


def shell_centroid(points):
    """Arithmetic mean of the element's node positions.

    Parameters
    ----------
    points : sequence of Vector3
        Positions of the distinct defined nodes of the element.

    Returns
    -------
    Vector3
    """
    if not points:
        raise ValueError("Cannot compute the centroid of an element without nodes")
    total = Vector3()
    for p in points:
        total = total + p
    return total * (1.0 / len(points))


def shell_normal(corners):
    """Unit normal of a shell element from its corner nodes.

    The normal follows the right-hand rule over the node ordering. Quads use
    the cross product of the diagonals, triangles (including quads with a
    collapsed fourth corner) use two edges.

    Parameters
    ----------
    corners : sequence of Vector3
        Positions of the distinct corner nodes (slots 1-4) in element order.

    Returns
    -------
    Vector3
        Unit normal, or the zero vector for a degenerate element.
    """
    if len(corners) >= 4:
        p1, p2, p3, p4 = corners[:4]
        normal = (p3 - p1).cross(p4 - p2)
    elif len(corners) == 3:
        p1, p2, p3 = corners
        normal = (p2 - p1).cross(p3 - p1)
    else:
        return Vector3()
    length = normal.norm()
    if length == 0.0:
        return Vector3()
    return normal * (1.0 / length)
