"""Process configuration loaded from the environment and ``.env``."""

from __future__ import annotations

from dataclasses import dataclass
from email.utils import parseaddr
import os
from typing import Mapping, Optional

from dotenv import load_dotenv

from .db.engine import DEFAULT_SQLITE_URL, ROOT_DIR
from .db.utils import resolve_sqlite_url
from .errors import ConfigurationError
from .mail.message import DEFAULT_SUBJECT, DEFAULT_TEMPLATE, TemplateMessageFormatter

DEFAULT_SMTP_PORT = 587
DEFAULT_SMTP_TIMEOUT = 30.0
DEFAULT_SMTP_RETRIES = 1


@dataclass(frozen=True)
class Settings:
    """Resolved settings for one process.

    SMTP fields are ``None`` when loaded with ``require_smtp=False``; commands
    that only touch the database do not need mail credentials.
    """

    database_url: str
    smtp_sender: Optional[str] = None
    smtp_relay: Optional[str] = None
    smtp_port: int = DEFAULT_SMTP_PORT
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_timeout: float = DEFAULT_SMTP_TIMEOUT
    smtp_retries: int = DEFAULT_SMTP_RETRIES
    subject: str = DEFAULT_SUBJECT
    template: str = DEFAULT_TEMPLATE

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        require_smtp: bool = True,
    ) -> "Settings":
        """Build settings from ``environ`` (``os.environ`` after loading ``.env``).

        Raises
        ------
        ConfigurationError
            If a required variable is missing or a value is malformed.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        db_url = environ.get("DB_URL")
        database_url = (
            resolve_sqlite_url(db_url, ROOT_DIR) if db_url else DEFAULT_SQLITE_URL
        )

        sender = environ.get("SMTP_SENDER")
        relay = environ.get("SMTP_RELAY")
        username = environ.get("SMTP_USER")
        password = environ.get("SMTP_PASSWORD")
        if require_smtp:
            missing = [
                name
                for name, value in (
                    ("SMTP_SENDER", sender),
                    ("SMTP_RELAY", relay),
                    ("SMTP_USER", username),
                    ("SMTP_PASSWORD", password),
                )
                if not value
            ]
            if missing:
                raise ConfigurationError(
                    f"Missing required environment variables: {', '.join(missing)}"
                )
        if sender:
            _validate_sender(sender)
        template = environ.get("MESSAGE_TEMPLATE") or DEFAULT_TEMPLATE
        _validate_template(template)

        return cls(
            database_url=database_url,
            smtp_sender=sender,
            smtp_relay=relay,
            smtp_port=_parse_int(environ, "SMTP_PORT", DEFAULT_SMTP_PORT),
            smtp_username=username,
            smtp_password=password,
            smtp_timeout=_parse_float(environ, "SMTP_TIMEOUT", DEFAULT_SMTP_TIMEOUT),
            smtp_retries=_parse_int(environ, "SMTP_RETRIES", DEFAULT_SMTP_RETRIES),
            subject=environ.get("MESSAGE_SUBJECT") or DEFAULT_SUBJECT,
            template=template,
        )

    def make_formatter(self) -> TemplateMessageFormatter:
        if not self.smtp_sender:
            raise ConfigurationError("SMTP_SENDER is required to send messages")
        return TemplateMessageFormatter(
            self.smtp_sender, subject=self.subject, template=self.template
        )


def _validate_sender(sender: str) -> None:
    _name, address = parseaddr(sender)
    if not address or "@" not in address:
        raise ConfigurationError(f"SMTP_SENDER is not a valid address: {sender!r}")


def _validate_template(template: str) -> None:
    try:
        template.format(giver="", recipient="")
    except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(
            "MESSAGE_TEMPLATE may only use the {giver} and {recipient} fields"
        ) from exc


def _parse_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ConfigurationError(f"{name} must be non-negative, got {value}")
    return value


def _parse_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


__all__ = ["Settings"]
