"""Map a shell hull onto a beam skeleton and morph it"""

try:
    from ._version import version as __version__
except ImportError:
    __version__ = "unknown"

# Export key functions for programmatic use
from .association import AssociationMap, AssociationResolver
from .config import MorphConfig
from .core import InputValidationError, MorphResult, morph
from .keyword import read_keyword, write_keyword
from .mesh import BeamElement, MeshModel, Node, ShellElement
from .projection import BoundaryRecord, Projector
from .segmentation import SegmentationError, TopologySegmenter

__all__ = [
    "__version__",
    "AssociationMap",
    "AssociationResolver",
    "BeamElement",
    "BoundaryRecord",
    "InputValidationError",
    "MeshModel",
    "MorphConfig",
    "MorphResult",
    "Node",
    "Projector",
    "SegmentationError",
    "ShellElement",
    "TopologySegmenter",
    "morph",
    "read_keyword",
    "write_keyword",
]
