"""Exception hierarchy shared by the draw engine, workflows and CLI."""

from __future__ import annotations


class SecretSantaError(Exception):
    """Base class for errors the CLI reports without a traceback."""


class ConfigurationError(SecretSantaError):
    """Raised at startup when required settings are missing or malformed."""


class NotFoundError(SecretSantaError, LookupError):
    """Raised when a referenced row does not exist."""

    entity = "Object"

    def __init__(self, object_id: int) -> None:
        self.object_id = object_id
        super().__init__(f"{self.entity} with id {object_id} does not exist")


class GroupNotFoundError(NotFoundError):
    entity = "Group"


class ParticipantNotFoundError(NotFoundError):
    entity = "Participant"


class DrawNotFoundError(NotFoundError):
    entity = "Draw"


class DispatchRecordNotFoundError(NotFoundError):
    entity = "Dispatch record"


class DegenerateRosterError(SecretSantaError, ValueError):
    """Raised when a roster is too small to produce a valid assignment."""

    def __init__(self, draw_id: int, size: int) -> None:
        self.draw_id = draw_id
        self.size = size
        super().__init__(
            f"Draw {draw_id} needs at least 2 participants, roster has {size}"
        )


class RosterDriftError(SecretSantaError):
    """Raised when a group's roster no longer matches its draw's fingerprint."""

    def __init__(
        self,
        draw_id: int,
        *,
        expected_count: int,
        actual_count: int,
    ) -> None:
        self.draw_id = draw_id
        self.expected_count = expected_count
        self.actual_count = actual_count
        super().__init__(
            f"Roster for draw {draw_id} changed since creation "
            f"({expected_count} participants frozen, {actual_count} now); "
            "create a new draw or run with roster verification disabled"
        )


class ImmutableRecordError(SecretSantaError):
    """Raised when code tries to modify a frozen draw or dispatch record."""


class ParticipantInUseError(SecretSantaError):
    """Raised when removing a participant that dispatch records still reference."""

    def __init__(self, participant_id: int, record_count: int) -> None:
        self.participant_id = participant_id
        self.record_count = record_count
        super().__init__(
            f"Participant {participant_id} is referenced by {record_count} "
            "dispatch record(s); delete those records or the whole group first"
        )


__all__ = [
    "ConfigurationError",
    "DegenerateRosterError",
    "DispatchRecordNotFoundError",
    "DrawNotFoundError",
    "GroupNotFoundError",
    "ImmutableRecordError",
    "NotFoundError",
    "ParticipantInUseError",
    "ParticipantNotFoundError",
    "RosterDriftError",
    "SecretSantaError",
]
