"""Database models for draws and their frozen roster snapshot."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Iterable, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, event, inspect, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..db.utils import dt_iso
from ..errors import ImmutableRecordError
from .base import ID_TYPE, Base, utc_now

if TYPE_CHECKING:
    from .dispatch import DispatchRecord
    from .group import Group


class Draw(Base):
    """A seeded draw frozen against the roster of its group at creation time."""

    __tablename__ = "draws"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    group_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    """Foreign key referencing :class:`Group`."""

    seed: Mapped[str] = mapped_column(String(64), nullable=False)
    """Secret seed from which every run derives the same permutation."""

    fingerprint: Mapped[str] = mapped_column(String(64), nullable=False)
    """SHA-256 hex digest over the sorted participant ids at creation."""

    participant_count: Mapped[int] = mapped_column(Integer, nullable=False)
    """Number of participants hashed into :attr:`fingerprint`."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    group: Mapped["Group"] = relationship(back_populates="draws")

    dispatch_records: Mapped[list["DispatchRecord"]] = relationship(
        back_populates="draw",
        cascade="all, delete-orphan",
        order_by="DispatchRecord.id",
    )
    """Audit history of every send attempted for this draw."""

    FROZEN_FIELDS = ("seed", "fingerprint", "participant_count", "group_id")

    def __init__(
        self,
        *,
        seed: str,
        fingerprint: str,
        participant_count: int,
        group: Optional["Group"] = None,
        group_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.seed = seed
        self.fingerprint = fingerprint
        self.participant_count = participant_count
        if group is not None:
            self.group = group
        if group_id is not None:
            self.group_id = group_id
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Draw(id={id}, group_id={group}, participant_count={count})>".format(
            id=self.id,
            group=self.group_id,
            count=self.participant_count,
        )

    def to_json(self, *, include_seed: bool = False) -> dict[str, Any]:
        """Serialize the draw. The seed is omitted unless explicitly requested."""
        data: dict[str, Any] = {
            "id": self.id,
            "group_id": self.group_id,
            "fingerprint": self.fingerprint,
            "participant_count": self.participant_count,
            "created_at": dt_iso(self.created_at),
        }
        if include_seed:
            data["seed"] = self.seed
        return data

    @classmethod
    def list_by_group(cls, session: Session, group_id: int) -> list["Draw"]:
        stmt = select(cls).where(cls.group_id == group_id).order_by(cls.id)
        return list(session.scalars(stmt))


def changed_attributes(target: Base, names: Iterable[str]) -> list[str]:
    """Return the subset of ``names`` whose value differs from the loaded one."""
    state = inspect(target)
    return [name for name in names if state.attrs[name].history.has_changes()]


@event.listens_for(Draw, "before_update")
def _freeze_draw(mapper, connection, target: Draw) -> None:
    changed = changed_attributes(target, Draw.FROZEN_FIELDS)
    if changed:
        raise ImmutableRecordError(
            f"Draw {target.id} is frozen; cannot change {', '.join(changed)}"
        )


__all__ = ["Draw", "changed_attributes"]
