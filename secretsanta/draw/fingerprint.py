"""Stable digest over a roster's participant ids."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
from typing import Iterable


@dataclass(frozen=True)
class RosterFingerprint:
    """Digest of a participant-id set and the number of ids hashed.

    Attributes
    ----------
    digest : str
        SHA-256 hex digest of the canonical id sequence.
    count : int
        Number of participant ids that went into ``digest``.
    """

    digest: str
    count: int

    def matches(self, digest: str, count: int) -> bool:
        return self.digest == digest and self.count == count


def fingerprint_roster(participant_ids: Iterable[int]) -> RosterFingerprint:
    """Compute the fingerprint of ``participant_ids``.

    Ids are sorted ascending and joined with commas before hashing, so the
    insertion order of participants never affects the digest. An empty roster
    hashes the empty string.

    Parameters
    ----------
    participant_ids : Iterable[int]
        Ids of every participant in the roster.

    Returns
    -------
    RosterFingerprint
        Digest and count of the hashed ids.
    """
    canonical = sorted(int(pid) for pid in participant_ids)
    payload = ",".join(str(pid) for pid in canonical).encode("ascii")
    return RosterFingerprint(
        digest=hashlib.sha256(payload).hexdigest(),
        count=len(canonical),
    )


__all__ = ["RosterFingerprint", "fingerprint_roster"]
