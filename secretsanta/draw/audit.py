"""Append-only store for dispatch outcomes."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..errors import DispatchRecordNotFoundError
from ..models import DispatchRecord

logger = logging.getLogger(__name__)


class AuditLog:
    """Read/append access to :class:`DispatchRecord` rows.

    There is no update method; correcting a send means appending a new
    record.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session used for lookups and persistence.
    durable : bool, default: False
        When ``True`` every append and delete is committed immediately, so
        records written before a crash survive it. When ``False`` rows are
        only flushed and the session owner decides when to commit.
    """

    def __init__(self, session: Session, *, durable: bool = False) -> None:
        self._session = session
        self._durable = durable

    def append(
        self,
        *,
        draw_id: int,
        giver_id: int,
        recipient_id: int,
        succeeded: bool,
        error: Optional[str] = None,
        attempts: int = 1,
    ) -> DispatchRecord:
        """Persist a new record and return it with its ``id`` populated."""
        record = DispatchRecord(
            draw_id=draw_id,
            giver_id=giver_id,
            recipient_id=recipient_id,
            succeeded=succeeded,
            error=error,
            attempts=attempts,
        )
        self._session.add(record)
        self._session.flush()
        self._maybe_commit()
        return record

    def get(self, record_id: int) -> DispatchRecord:
        record = self._session.get(DispatchRecord, record_id)
        if record is None:
            raise DispatchRecordNotFoundError(record_id)
        return record

    def list_by_draw(self, draw_id: int) -> list[DispatchRecord]:
        stmt = (
            select(DispatchRecord)
            .where(DispatchRecord.draw_id == draw_id)
            .order_by(DispatchRecord.id)
        )
        return list(self._session.scalars(stmt))

    def list_all(self) -> list[DispatchRecord]:
        return list(self._session.scalars(select(DispatchRecord).order_by(DispatchRecord.id)))

    def delete_by_draw(self, draw_id: int) -> list[int]:
        """Delete every record of ``draw_id`` and return the deleted ids."""
        ids = list(
            self._session.scalars(
                select(DispatchRecord.id)
                .where(DispatchRecord.draw_id == draw_id)
                .order_by(DispatchRecord.id)
            )
        )
        if ids:
            self._session.execute(
                delete(DispatchRecord)
                .where(DispatchRecord.id.in_(ids))
                .execution_options(synchronize_session="fetch")
            )
            self._session.flush()
            self._maybe_commit()
        logger.info(f"Deleted {len(ids)} dispatch records of draw {draw_id}")
        return ids

    def delete(self, record_id: int) -> int:
        record = self.get(record_id)
        self._session.delete(record)
        self._session.flush()
        self._maybe_commit()
        logger.info(f"Deleted dispatch record {record_id}")
        return record_id

    def _maybe_commit(self) -> None:
        if self._durable:
            self._session.commit()


__all__ = ["AuditLog"]
