"""Configuration dataclass for hull morphing."""

from dataclasses import asdict, dataclass
from typing import Optional
import json

from .projection import RADIUS, SCALE
from .segmentation import DEFAULT_MAX_PASSES
from .utils import load_json


@dataclass
class MorphConfig:
    """Complete configuration of a morphing run.

    Attributes
    ----------
    scale : float or None
        Fraction of the offset to the skeleton kept by every node. Exclusive
        with ``radius``.
    radius : float or None
        Distance from the skeleton at which nodes are placed. Exclusive with
        ``scale``.
    flip : bool
        Search along the reversed shell normals.
    start_angle : float
        Initial half-angle of the search cone in degrees.
    step_angle : float
        Widening step of the search cone in degrees.
    force : bool
        Recompute every association instead of reusing the sets stored in
        the hull deck.
    persist : bool
        Store the association in the hull deck as shell sets.
    load_curve_id : int or None
        Load curve driving the prescribed final geometry.
    boundary_id : int
        Id of the prescribed final geometry card.
    max_segmentation_passes : int
        Bound on the node splitting passes.
    verbose : bool
        Show progress bars.
    """

    scale: Optional[float] = None
    radius: Optional[float] = None
    flip: bool = False
    start_angle: float = 15.0
    step_angle: float = 5.0
    force: bool = False
    persist: bool = False
    load_curve_id: Optional[int] = None
    boundary_id: int = 1
    max_segmentation_passes: int = DEFAULT_MAX_PASSES
    verbose: bool = False

    @property
    def mode(self) -> Optional[str]:
        """``"scale"``, ``"radius"`` or None when no morphing is requested."""
        if self.scale is not None:
            return SCALE
        if self.radius is not None:
            return RADIUS
        return None

    @property
    def parameter(self) -> Optional[float]:
        return self.scale if self.scale is not None else self.radius

    def validate(self) -> None:
        """Raise ValueError for inconsistent settings."""
        if self.scale is not None and self.radius is not None:
            raise ValueError("scale and radius are mutually exclusive")
        if self.radius is not None and self.radius < 0:
            raise ValueError(f"radius must be non-negative, got {self.radius}")
        if not 0.0 < self.start_angle < 180.0:
            raise ValueError(
                f"start_angle must be in (0, 180) degrees, got {self.start_angle}"
            )
        if self.step_angle <= 0.0:
            raise ValueError(f"step_angle must be positive, got {self.step_angle}")
        if self.max_segmentation_passes < 1:
            raise ValueError("max_segmentation_passes must be at least 1")

    def to_dict(self) -> dict:
        """Convert config to dictionary for serialization."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Serialize config to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict) -> "MorphConfig":
        """Create config from dictionary; unknown keys are rejected."""
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_json(cls, json_str: str) -> "MorphConfig":
        """Create config from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_json_file(cls, path: str) -> "MorphConfig":
        """Load config from JSON file."""
        return cls.from_dict(load_json(path))
