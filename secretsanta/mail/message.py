"""Message rendering for assignment notifications."""

from __future__ import annotations

from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..models import Participant

DEFAULT_SUBJECT = "Secret Santa"
DEFAULT_TEMPLATE = "Your Secret Santa has been drawn! It's {recipient}"


@dataclass(frozen=True)
class RenderedMessage:
    """Formatter output: everything about a message except its addressee."""

    subject: str
    body: str
    sender: str


@dataclass(frozen=True)
class OutgoingMessage:
    """Fully addressed message handed to a :class:`~secretsanta.mail.transport.Transport`."""

    sender: str
    to_name: str
    to_address: str
    subject: str
    body: str

    @classmethod
    def for_giver(
        cls, giver: "Participant", rendered: RenderedMessage
    ) -> "OutgoingMessage":
        return cls(
            sender=rendered.sender,
            to_name=giver.name,
            to_address=giver.email,
            subject=rendered.subject,
            body=rendered.body,
        )

    def to_email(self) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        # formataddr quotes display names containing commas or other specials.
        msg["To"] = formataddr((self.to_name, self.to_address))
        msg["Subject"] = self.subject
        msg.set_content(self.body)
        return msg


class MessageFormatter(Protocol):
    """Strategy turning a giver/recipient pair into subject, body and sender."""

    def __call__(
        self, giver: "Participant", recipient: "Participant"
    ) -> RenderedMessage: ...


class TemplateMessageFormatter:
    """Formatter backed by a :meth:`str.format` template.

    The template receives ``giver`` and ``recipient`` as the participants'
    display names.
    """

    def __init__(
        self,
        sender: str,
        *,
        subject: str = DEFAULT_SUBJECT,
        template: str = DEFAULT_TEMPLATE,
    ) -> None:
        self.sender = sender
        self.subject = subject
        self.template = template

    def __call__(
        self, giver: "Participant", recipient: "Participant"
    ) -> RenderedMessage:
        body = self.template.format(giver=giver.name, recipient=recipient.name)
        return RenderedMessage(subject=self.subject, body=body, sender=self.sender)


__all__ = [
    "DEFAULT_SUBJECT",
    "DEFAULT_TEMPLATE",
    "MessageFormatter",
    "OutgoingMessage",
    "RenderedMessage",
    "TemplateMessageFormatter",
]
