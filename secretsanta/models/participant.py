from __future__ import annotations

from datetime import datetime
from email.utils import formataddr
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import DateTime, ForeignKey, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, validates

from ..db.utils import dt_iso
from .base import ID_TYPE, Base, utc_now

if TYPE_CHECKING:
    from .group import Group


class Participant(Base):
    """Member of a group who both gives and receives a gift."""

    __tablename__ = "participants"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key. Ascending id order is the canonical roster order."""

    group_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    """Foreign key referencing :class:`Group`."""

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    """Display name used in notification messages."""

    email: Mapped[str] = mapped_column(String(320), nullable=False)
    """Address the participant's assignment is sent to."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    group: Mapped["Group"] = relationship(back_populates="participants")

    def __init__(
        self,
        *,
        name: str,
        email: str,
        group: Optional["Group"] = None,
        group_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.name = name
        self.email = email
        if group is not None:
            self.group = group
        if group_id is not None:
            self.group_id = group_id
        if created_at is not None:
            self.created_at = created_at

    @validates("email")
    def _normalize_email(self, _key: str, value: str) -> str:
        normalized = value.strip()
        if not normalized or "@" not in normalized:
            raise ValueError(f"Invalid email address: {value!r}")
        return normalized

    @validates("name")
    def _normalize_name(self, _key: str, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Participant name must not be empty")
        return normalized

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Participant(id={id}, group_id={group}, name={name!r})>".format(
            id=self.id,
            group=self.group_id,
            name=self.name,
        )

    @property
    def mailbox(self) -> str:
        """``Name <address>`` form used in the ``To`` header."""
        return formataddr((self.name, self.email))

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "group_id": self.group_id,
            "name": self.name,
            "email": self.email,
            "created_at": dt_iso(self.created_at),
        }

    @classmethod
    def list_by_group(cls, session: Session, group_id: int) -> list["Participant"]:
        """Return the roster of ``group_id`` in canonical ascending id order."""
        stmt = select(cls).where(cls.group_id == group_id).order_by(cls.id)
        return list(session.scalars(stmt))
