"""Per-assignment message delivery with continue-on-error auditing."""

from __future__ import annotations

import logging
import random
from typing import Sequence

from ..mail.message import MessageFormatter, OutgoingMessage
from ..mail.transport import SendResult, Transport
from ..models import DispatchRecord, Participant
from .assignment import Assignment
from .audit import AuditLog

logger = logging.getLogger(__name__)


class DispatchPipeline:
    """Render and send one message per assignment, recording every outcome.

    Parameters
    ----------
    audit : AuditLog
        Store receiving one :class:`DispatchRecord` per attempt.
    transport : Transport
        Delivery backend. Failures it reports, or exceptions it raises, are
        recorded and never stop the remaining sends.
    formatter : MessageFormatter
        Strategy producing subject, body and sender for a giver/recipient pair.
    """

    def __init__(
        self,
        audit: AuditLog,
        transport: Transport,
        formatter: MessageFormatter,
    ) -> None:
        self._audit = audit
        self._transport = transport
        self._formatter = formatter

    def dispatch_one(
        self, draw_id: int, assignment: Assignment[Participant]
    ) -> DispatchRecord:
        """Notify ``assignment.giver`` of their recipient and audit the attempt.

        Persistence errors propagate; delivery errors become a failed record.
        """
        result = self._send(assignment)
        record = self._audit.append(
            draw_id=draw_id,
            giver_id=assignment.giver.id,
            recipient_id=assignment.recipient.id,
            succeeded=result.ok,
            error=result.error,
            attempts=result.attempts,
        )
        # Giver order mirrors the permutation, so keep per-send detail out of INFO.
        logger.debug(
            f"Dispatch record {record.id} for giver {assignment.giver.id}: "
            + ("sent" if result.ok else f"failed ({result.error})")
        )
        return record

    def dispatch(
        self,
        draw_id: int,
        assignments: Sequence[Assignment[Participant]],
        rng: random.Random,
    ) -> list[int]:
        """Dispatch every assignment in order and return the new record ids.

        The returned ids are reshuffled with ``rng`` (the generator that
        produced the permutation) so the order a caller prints them in says
        nothing about the send order.

        Parameters
        ----------
        draw_id : int
            Draw owning the records.
        assignments : Sequence[Assignment[Participant]]
            Assignments in send order.
        rng : random.Random
            Seeded generator continued from the permutation step.

        Returns
        -------
        list[int]
            Ids of the created records, one per assignment, in shuffled order.
        """
        record_ids: list[int] = []
        failed = 0
        for assignment in assignments:
            record = self.dispatch_one(draw_id, assignment)
            record_ids.append(record.id)
            if not record.succeeded:
                failed += 1

        rng.shuffle(record_ids)
        logger.info(
            f"Draw {draw_id}: {len(record_ids) - failed} sent, {failed} failed"
        )
        return record_ids

    def _send(self, assignment: Assignment[Participant]) -> SendResult:
        try:
            rendered = self._formatter(assignment.giver, assignment.recipient)
            message = OutgoingMessage.for_giver(assignment.giver, rendered)
            return self._transport.send(message)
        except Exception as exc:
            logger.warning(
                f"Send to giver {assignment.giver.id} raised {type(exc).__name__}",
                exc_info=True,
            )
            return SendResult.failure(f"{type(exc).__name__}: {exc}")


__all__ = ["DispatchPipeline"]
