"""Draw and dispatch engine."""

from .assignment import (
    Assignment,
    derive_assignments,
    pair_cyclic,
    permute_roster,
    seeded_rng,
)
from .audit import AuditLog
from .dispatch import DispatchPipeline
from .fingerprint import RosterFingerprint, fingerprint_roster
from .lifecycle import DrawController, DrawRunReport
from .seed import generate_seed

__all__ = [
    "Assignment",
    "AuditLog",
    "DispatchPipeline",
    "DrawController",
    "DrawRunReport",
    "RosterFingerprint",
    "derive_assignments",
    "fingerprint_roster",
    "generate_seed",
    "pair_cyclic",
    "permute_roster",
    "seeded_rng",
]
