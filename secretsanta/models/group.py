from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import DateTime, String, UniqueConstraint, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..db.utils import dt_iso
from .base import ID_TYPE, Base, utc_now

if TYPE_CHECKING:
    from .draw import Draw
    from .participant import Participant


class Group(Base):
    """A gift exchange: the set of people who draw names among themselves."""

    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    """Human readable label, unique across groups."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    participants: Mapped[list["Participant"]] = relationship(
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="Participant.id",
    )
    """Roster of the group in canonical (ascending id) order."""

    draws: Mapped[list["Draw"]] = relationship(
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="Draw.id",
    )

    __table_args__ = (UniqueConstraint("name", name="uq_groups_name"),)

    def __init__(
        self,
        *,
        name: str,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.name = name
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<Group(id={self.id}, name={self.name!r})>"

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": dt_iso(self.created_at),
        }

    @classmethod
    def get_by_name(cls, session: Session, name: str) -> Optional["Group"]:
        """Return the group called ``name`` if it exists."""
        return session.scalar(select(cls).where(cls.name == name))
