from datetime import datetime, timezone

from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase

from secretsanta.db.metadata import metadata_obj

# BigInteger ids, with the Integer variant SQLite needs for ROWID autoincrement.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")


def utc_now() -> datetime:
    """Default for ``created_at`` columns."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base bound to the project's constraint naming convention."""

    metadata = metadata_obj
