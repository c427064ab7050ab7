"""Message rendering and delivery."""

from .message import (
    MessageFormatter,
    OutgoingMessage,
    RenderedMessage,
    TemplateMessageFormatter,
)
from .transport import (
    RetryingTransport,
    SendResult,
    SmtpTransport,
    Transport,
    make_transport,
)

__all__ = [
    "MessageFormatter",
    "OutgoingMessage",
    "RenderedMessage",
    "RetryingTransport",
    "SendResult",
    "SmtpTransport",
    "TemplateMessageFormatter",
    "Transport",
    "make_transport",
]
