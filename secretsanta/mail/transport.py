"""Mail transports used by the dispatch pipeline."""

from __future__ import annotations

from dataclasses import dataclass, replace
import logging
import smtplib
import ssl
import time
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from .message import OutgoingMessage

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SendResult:
    """Outcome of handing one message to a transport.

    Attributes
    ----------
    ok : bool
        ``True`` when the message was accepted.
    error : Optional[str]
        Failure reason; ``None`` on success.
    attempts : int
        Number of tries made before this outcome was reached.
    """

    ok: bool
    error: Optional[str] = None
    attempts: int = 1

    @classmethod
    def success(cls, attempts: int = 1) -> "SendResult":
        return cls(ok=True, attempts=attempts)

    @classmethod
    def failure(cls, reason: str, attempts: int = 1) -> "SendResult":
        return cls(ok=False, error=reason, attempts=attempts)


class Transport(Protocol):
    def send(self, message: OutgoingMessage) -> SendResult: ...


class SmtpTransport:
    """Deliver messages through an SMTP relay.

    A connection is opened per message with a bounded ``timeout`` so that an
    unresponsive relay cannot stall a whole run. STARTTLS is used whenever the
    relay advertises it.
    """

    def __init__(
        self,
        relay: str,
        *,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
    ) -> None:
        self.relay = relay
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout
        self._smtp_factory = smtp_factory

    def send(self, message: OutgoingMessage) -> SendResult:
        try:
            with self._smtp_factory(self.relay, self.port, timeout=self.timeout) as smtp:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls(context=ssl.create_default_context())
                    smtp.ehlo()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message.to_email())
        except (smtplib.SMTPException, OSError) as exc:
            # OSError covers refused connections and socket timeouts.
            return SendResult.failure(f"{type(exc).__name__}: {exc}")
        return SendResult.success()


class RetryingTransport:
    """Retry failed sends a bounded number of times with exponential backoff."""

    def __init__(
        self,
        inner: Transport,
        *,
        retries: int = 1,
        backoff: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if retries < 0:
            raise ValueError("retries must be non-negative")
        self.inner = inner
        self.retries = retries
        self.backoff = backoff
        self._sleep = sleep

    def send(self, message: OutgoingMessage) -> SendResult:
        result = self._try_send(message)
        attempt = 1
        while not result.ok and attempt <= self.retries:
            delay = self.backoff * 2 ** (attempt - 1)
            logger.debug(f"Send failed ({result.error}); retrying in {delay:.1f}s")
            self._sleep(delay)
            result = self._try_send(message)
            attempt += 1
        return replace(result, attempts=attempt)

    def _try_send(self, message: OutgoingMessage) -> SendResult:
        try:
            return self.inner.send(message)
        except Exception as exc:
            logger.warning(
                f"Transport raised {type(exc).__name__} for {message.to_address}",
                exc_info=True,
            )
            return SendResult.failure(f"{type(exc).__name__}: {exc}")


def make_transport(settings: "Settings") -> Transport:
    """Build the SMTP transport described by ``settings``."""
    smtp = SmtpTransport(
        settings.smtp_relay,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        timeout=settings.smtp_timeout,
    )
    if settings.smtp_retries:
        return RetryingTransport(smtp, retries=settings.smtp_retries)
    return smtp


__all__ = [
    "RetryingTransport",
    "SendResult",
    "SmtpTransport",
    "Transport",
    "make_transport",
]
