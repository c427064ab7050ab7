"""Append-only audit rows describing each notification send."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    event,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.utils import dt_iso
from ..errors import ImmutableRecordError
from .base import ID_TYPE, Base, utc_now
from .draw import changed_attributes

if TYPE_CHECKING:
    from .draw import Draw
    from .participant import Participant


class DispatchRecord(Base):
    """Immutable record of one attempt to notify a giver of their recipient.

    A retry never updates an existing row; it appends a new one, so the table
    holds the full delivery history of every draw.
    """

    __tablename__ = "dispatch_records"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    draw_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("draws.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    """Draw the send belongs to."""

    giver_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("participants.id"), nullable=False
    )
    """Participant who received the email and buys the gift."""

    recipient_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("participants.id"), nullable=False
    )
    """Participant named in the email, the one who gets the gift."""

    succeeded: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    """``True`` when the transport accepted the message."""

    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """Transport error detail for failed sends."""

    attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=text("1")
    )
    """Number of transport tries that led to this outcome."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    draw: Mapped["Draw"] = relationship(back_populates="dispatch_records")
    giver: Mapped["Participant"] = relationship(foreign_keys=[giver_id])
    recipient: Mapped["Participant"] = relationship(foreign_keys=[recipient_id])

    __table_args__ = (
        Index("ix_dispatch_records_draw_giver", "draw_id", "giver_id"),
    )

    COLUMNS = (
        "draw_id",
        "giver_id",
        "recipient_id",
        "succeeded",
        "error",
        "attempts",
        "created_at",
    )

    def __init__(
        self,
        *,
        draw_id: int,
        giver_id: int,
        recipient_id: int,
        succeeded: bool,
        error: Optional[str] = None,
        attempts: int = 1,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.draw_id = draw_id
        self.giver_id = giver_id
        self.recipient_id = recipient_id
        self.succeeded = succeeded
        self.error = error
        self.attempts = attempts
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<DispatchRecord(id={id}, draw_id={draw}, giver_id={giver}, succeeded={ok})>".format(
            id=self.id,
            draw=self.draw_id,
            giver=self.giver_id,
            ok=self.succeeded,
        )

    def to_json(self, *, include_recipient: bool = False) -> dict[str, Any]:
        """Serialize the record.

        ``recipient_id`` reveals the assignment and is left out unless the
        caller asks for it.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "draw_id": self.draw_id,
            "giver_id": self.giver_id,
            "succeeded": self.succeeded,
            "error": self.error,
            "attempts": self.attempts,
            "created_at": dt_iso(self.created_at),
        }
        if include_recipient:
            data["recipient_id"] = self.recipient_id
        return data


@event.listens_for(DispatchRecord, "before_update")
def _reject_update(mapper, connection, target: DispatchRecord) -> None:
    changed = changed_attributes(target, DispatchRecord.COLUMNS)
    if changed:
        raise ImmutableRecordError(
            f"Dispatch record {target.id} is append-only; "
            f"cannot change {', '.join(changed)}"
        )


__all__ = ["DispatchRecord"]
