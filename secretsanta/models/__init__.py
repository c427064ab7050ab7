from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .group import Group  # noqa: F401
from .participant import Participant  # noqa: F401
from .draw import Draw  # noqa: F401
from .dispatch import DispatchRecord  # noqa: F401

__all__ = [
    "Base",
    "Group",
    "Participant",
    "Draw",
    "DispatchRecord",
]
