"""Seeded derivation of the giver -> recipient cycle."""

from __future__ import annotations

from dataclasses import dataclass
import random
from typing import Generic, Protocol, Sequence, TypeVar


class RosterMember(Protocol):
    id: int


M = TypeVar("M", bound=RosterMember)


@dataclass(frozen=True)
class Assignment(Generic[M]):
    """One edge of the gift cycle: ``giver`` buys a gift for ``recipient``."""

    giver: M
    recipient: M


def seeded_rng(seed: str) -> random.Random:
    """Return a PRNG seeded directly from the draw's seed string.

    String seeds are hashed by :class:`random.Random` itself, independently of
    ``PYTHONHASHSEED``, so the stream is identical across processes.
    """
    return random.Random(seed)


def permute_roster(roster: Sequence[M], rng: random.Random) -> list[M]:
    """Shuffle ``roster`` after putting it in canonical ascending id order."""
    ordered = sorted(roster, key=lambda member: member.id)
    rng.shuffle(ordered)
    return ordered


def pair_cyclic(permutation: Sequence[M]) -> list[Assignment[M]]:
    """Pair position ``i`` with position ``i + 1`` (mod N).

    For N >= 2 this is a single cycle with no fixed point. For N == 1 the
    sole member is paired with itself; rejecting that is up to the caller.
    """
    size = len(permutation)
    return [
        Assignment(giver=member, recipient=permutation[(idx + 1) % size])
        for idx, member in enumerate(permutation)
    ]


def derive_assignments(seed: str, roster: Sequence[M]) -> list[Assignment[M]]:
    """Compute the deterministic assignment of ``roster`` for ``seed``.

    Callers that need to keep drawing from the same stream afterwards (the
    dispatch pipeline reshuffles its results with it) should compose
    :func:`seeded_rng`, :func:`permute_roster` and :func:`pair_cyclic`
    themselves.

    Parameters
    ----------
    seed : str
        The draw's frozen seed.
    roster : Sequence[M]
        Participants (anything with an integer ``id``); order is irrelevant.

    Returns
    -------
    list[Assignment[M]]
        Assignments in send order; empty for an empty roster.
    """
    return pair_cyclic(permute_roster(roster, seeded_rng(seed)))


__all__ = [
    "Assignment",
    "RosterMember",
    "derive_assignments",
    "pair_cyclic",
    "permute_roster",
    "seeded_rng",
]
