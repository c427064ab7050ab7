"""Orchestration of draw creation, runs and redos."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import (
    ConfigurationError,
    DegenerateRosterError,
    DrawNotFoundError,
    GroupNotFoundError,
    ParticipantNotFoundError,
    RosterDriftError,
)
from ..mail.message import MessageFormatter
from ..mail.transport import Transport
from ..models import DispatchRecord, Draw, Group, Participant
from .assignment import Assignment, pair_cyclic, permute_roster, seeded_rng
from .audit import AuditLog
from .dispatch import DispatchPipeline
from .fingerprint import fingerprint_roster
from .seed import generate_seed

logger = logging.getLogger(__name__)

MIN_ROSTER_SIZE = 2


@dataclass
class DrawRunReport:
    """Result of one run of a draw.

    Attributes
    ----------
    draw : Draw
        The draw that was run.
    records : list[DispatchRecord]
        Records created by this run, in decorrelated (shuffled) order.
    cleared_ids : list[int]
        Ids of prior records deleted before the run; empty unless the run
        replaced previous results.
    """

    draw: Draw
    records: list[DispatchRecord]
    cleared_ids: list[int] = field(default_factory=list)

    @property
    def record_ids(self) -> list[int]:
        return [record.id for record in self.records]

    @property
    def succeeded(self) -> int:
        return sum(1 for record in self.records if record.succeeded)

    @property
    def failed(self) -> int:
        return len(self.records) - self.succeeded


class DrawController:
    """Create draws and run or redo their dispatch.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session shared by every step of a run. It is not
        safe to share across threads; concurrent runs of the same draw must
        be serialized by the caller.
    transport : Optional[Transport], default: None
        Delivery backend. Only required for :meth:`run`, :meth:`redo` and
        :meth:`redo_one`.
    formatter : Optional[MessageFormatter], default: None
        Message strategy; required together with ``transport``.
    audit : Optional[AuditLog], default: None
        Audit store. Defaults to a non-durable log over ``session``.
    verify_roster : bool, default: True
        Refuse to run when the group's roster no longer matches the
        fingerprint frozen at draw creation.
    """

    def __init__(
        self,
        session: Session,
        *,
        transport: Optional[Transport] = None,
        formatter: Optional[MessageFormatter] = None,
        audit: Optional[AuditLog] = None,
        verify_roster: bool = True,
    ) -> None:
        self._session = session
        self._transport = transport
        self._formatter = formatter
        self.audit = audit or AuditLog(session)
        self.verify_roster = verify_roster

    # -------- queries --------
    def get(self, draw_id: int) -> Draw:
        draw = self._session.get(Draw, draw_id)
        if draw is None:
            raise DrawNotFoundError(draw_id)
        return draw

    def list_draws(self, group_id: Optional[int] = None) -> list[Draw]:
        if group_id is not None:
            return Draw.list_by_group(self._session, group_id)
        return list(self._session.scalars(select(Draw).order_by(Draw.id)))

    def roster(self, group_id: int) -> list[Participant]:
        """Return the current roster of ``group_id`` in ascending id order."""
        if self._session.get(Group, group_id) is None:
            raise GroupNotFoundError(group_id)
        return Participant.list_by_group(self._session, group_id)

    # -------- transitions --------
    def create(self, group_id: int) -> Draw:
        """Create a draw for ``group_id`` with a fresh seed and frozen fingerprint."""
        roster = self.roster(group_id)
        fingerprint = fingerprint_roster(p.id for p in roster)
        draw = Draw(
            group_id=group_id,
            seed=generate_seed(),
            fingerprint=fingerprint.digest,
            participant_count=fingerprint.count,
        )
        self._session.add(draw)
        self._session.flush()
        if fingerprint.count < MIN_ROSTER_SIZE:
            logger.warning(
                f"Draw {draw.id} created for group {group_id} with only "
                f"{fingerprint.count} participant(s); it cannot be run"
            )
        logger.info(f"Created draw {draw.id} for group {group_id}")
        return draw

    def run(
        self,
        draw_id: int,
        *,
        replace_previous: bool = False,
    ) -> DrawRunReport:
        """Recompute the draw's assignment and send one message per giver.

        Parameters
        ----------
        draw_id : int
            Draw to run.
        replace_previous : bool, default: False
            Delete the draw's existing dispatch records before sending. By
            default a run appends, preserving earlier history.

        Returns
        -------
        DrawRunReport
            Created records in decorrelated order plus any cleared ids.

        Raises
        ------
        DrawNotFoundError, GroupNotFoundError
            If the draw or its group does not exist.
        DegenerateRosterError
            If the roster has fewer than two participants. Nothing is
            cleared or sent.
        RosterDriftError
            If roster verification is on and the roster changed since the
            draw was created.
        """
        pipeline = self._pipeline()
        draw = self.get(draw_id)
        roster = self.roster(draw.group_id)
        if len(roster) < MIN_ROSTER_SIZE:
            raise DegenerateRosterError(draw.id, len(roster))
        if self.verify_roster:
            self._check_drift(draw, roster)

        cleared: list[int] = []
        if replace_previous:
            cleared = self.audit.delete_by_draw(draw.id)

        rng = seeded_rng(draw.seed)
        assignments = pair_cyclic(permute_roster(roster, rng))
        record_ids = pipeline.dispatch(draw.id, assignments, rng)
        records = [self.audit.get(record_id) for record_id in record_ids]
        return DrawRunReport(draw=draw, records=records, cleared_ids=cleared)

    def redo(self, draw_id: int) -> DrawRunReport:
        """Full redo: clear every record of the draw, then run it again."""
        return self.run(draw_id, replace_previous=True)

    def redo_one(self, record_id: int) -> DispatchRecord:
        """Resend the message behind ``record_id``.

        The original record is left untouched; the new attempt is appended as
        a separate record and returned.
        """
        pipeline = self._pipeline()
        previous = self.audit.get(record_id)
        giver = self._participant(previous.giver_id)
        recipient = self._participant(previous.recipient_id)
        record = pipeline.dispatch_one(
            previous.draw_id, Assignment(giver=giver, recipient=recipient)
        )
        logger.info(f"Redo of dispatch record {record_id} created record {record.id}")
        return record

    # -------- helpers --------
    def _pipeline(self) -> DispatchPipeline:
        if self._transport is None or self._formatter is None:
            raise ConfigurationError(
                "A transport and a message formatter are required to dispatch"
            )
        return DispatchPipeline(self.audit, self._transport, self._formatter)

    def _participant(self, participant_id: int) -> Participant:
        participant = self._session.get(Participant, participant_id)
        if participant is None:
            raise ParticipantNotFoundError(participant_id)
        return participant

    def _check_drift(self, draw: Draw, roster: list[Participant]) -> None:
        current = fingerprint_roster(p.id for p in roster)
        if not current.matches(draw.fingerprint, draw.participant_count):
            raise RosterDriftError(
                draw.id,
                expected_count=draw.participant_count,
                actual_count=current.count,
            )


__all__ = ["DrawController", "DrawRunReport", "MIN_ROSTER_SIZE"]
