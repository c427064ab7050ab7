from .engine import DEFAULT_SQLITE_URL, get_sessionmaker, make_engine
from .utils import dt_iso, resolve_sqlite_url

__all__ = [
    "DEFAULT_SQLITE_URL",
    "dt_iso",
    "get_sessionmaker",
    "make_engine",
    "resolve_sqlite_url",
]
