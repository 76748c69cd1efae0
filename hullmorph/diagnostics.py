"""Recoverable conditions reported by the morphing pipeline."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

_logger = logging.getLogger(__name__)


class DiagnosticKind(Enum):
    """Kinds of non-fatal conditions."""

    ASSOCIATION_CONFLICT = "association_conflict"
    ASSOCIATION_UNRESOLVED = "association_unresolved"
    DEGENERATE_PROJECTION = "degenerate_projection"
    MISSING_LOAD_CURVE = "missing_load_curve"


@dataclass(frozen=True)
class Diagnostic:
    """A recoverable condition attached to an entity.

    Attributes
    ----------
    kind : DiagnosticKind
        What happened.
    message : str
        Human-readable description.
    entity_id : int or None
        Shell, node or curve id the diagnostic refers to.
    """

    kind: DiagnosticKind
    message: str
    entity_id: Optional[int] = None

    def __str__(self):
        return f"[{self.kind.value}] {self.message}"


def report(diagnostics, kind, message, entity_id=None):
    """Append a diagnostic to ``diagnostics`` and log it as a warning."""
    diagnostic = Diagnostic(kind, message, entity_id)
    _logger.warning(str(diagnostic))
    diagnostics.append(diagnostic)
    return diagnostic
