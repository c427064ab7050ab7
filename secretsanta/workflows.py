"""Group and participant management used by the CLI and importer."""

from __future__ import annotations

from enum import Enum
import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .errors import (
    GroupNotFoundError,
    ParticipantInUseError,
    ParticipantNotFoundError,
)
from .models import DispatchRecord, Group, Participant

logger = logging.getLogger(__name__)


class ParticipantField(str, Enum):
    """Editable participant attributes, mapped to ORM attribute names."""

    NAME = "name"
    EMAIL = "email"


def create_group(session: Session, name: str) -> Group:
    """Persist a new group called ``name``.

    Raises
    ------
    ValueError
        If the name is blank or already taken.
    """
    name = name.strip()
    if not name:
        raise ValueError("Group name must not be empty")
    if Group.get_by_name(session, name) is not None:
        raise ValueError(f"A group named {name!r} already exists")

    group = Group(name=name)
    session.add(group)
    session.flush()
    logger.info(f"Created group {group.id} ({name})")
    return group


def get_group(session: Session, group_id: int) -> Group:
    group = session.get(Group, group_id)
    if group is None:
        raise GroupNotFoundError(group_id)
    return group


def list_groups(session: Session) -> list[Group]:
    return list(session.scalars(select(Group).order_by(Group.id)))


def delete_group(session: Session, group_id: int) -> int:
    """Delete a group together with its participants, draws and dispatch records."""
    group = get_group(session, group_id)
    session.delete(group)
    session.flush()
    logger.info(f"Deleted group {group_id}")
    return group_id


def add_participant(session: Session, group_id: int, name: str, email: str) -> Participant:
    """Add a participant to ``group_id``.

    Adding a participant changes the group's roster, so draws created before
    the addition will refuse to run while roster verification is enabled.
    """
    get_group(session, group_id)
    participant = Participant(group_id=group_id, name=name, email=email)
    session.add(participant)
    session.flush()
    logger.info(f"Created participant {participant.id} in group {group_id}")
    return participant


def get_participant(session: Session, participant_id: int) -> Participant:
    participant = session.get(Participant, participant_id)
    if participant is None:
        raise ParticipantNotFoundError(participant_id)
    return participant


def list_participants(
    session: Session, group_id: Optional[int] = None
) -> list[Participant]:
    """Return participants of ``group_id``, or of every group when omitted."""
    if group_id is not None:
        get_group(session, group_id)
        return Participant.list_by_group(session, group_id)
    return list(session.scalars(select(Participant).order_by(Participant.id)))


def update_participant(
    session: Session,
    participant_id: int,
    field: ParticipantField,
    value: str,
) -> Participant:
    """Set one editable attribute of a participant.

    Only attributes listed in :class:`ParticipantField` can be changed, and
    the write goes through the ORM, so no identifier is ever built from user
    input.
    """
    participant = get_participant(session, participant_id)
    setattr(participant, ParticipantField(field).value, value)
    session.flush()
    logger.info(f"Updated {ParticipantField(field).value} of participant {participant_id}")
    return participant


def remove_participant(session: Session, participant_id: int) -> int:
    """Delete a participant.

    Raises
    ------
    ParticipantInUseError
        If dispatch records still name the participant as giver or recipient.
    """
    participant = get_participant(session, participant_id)
    references = session.scalar(
        select(func.count())
        .select_from(DispatchRecord)
        .where(
            or_(
                DispatchRecord.giver_id == participant_id,
                DispatchRecord.recipient_id == participant_id,
            )
        )
    )
    if references:
        raise ParticipantInUseError(participant_id, references)
    session.delete(participant)
    session.flush()
    logger.info(f"Deleted participant {participant_id}")
    return participant_id


__all__ = [
    "ParticipantField",
    "add_participant",
    "create_group",
    "delete_group",
    "get_group",
    "get_participant",
    "list_groups",
    "list_participants",
    "remove_participant",
    "update_participant",
]
