"""Outbound email transport."""

import asyncio
import logging
import smtplib
import uuid
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundEmail:
    to: tuple[str, ...]
    subject: str
    html: str
    text: str
    reply_to: str
    from_email: str
    from_name: str
    cc: tuple[str, ...] = ()
    bcc: tuple[str, ...] = ()
    kind: str = "generic"


@dataclass(frozen=True)
class EmailResult:
    ok: bool
    id: Optional[str] = None
    error: Optional[str] = None
    preview: bool = field(default=False)


class EmailSender(Protocol):
    """Narrow transport interface; implementations report failures instead of raising."""

    async def send_email(self, message: OutboundEmail) -> EmailResult:
        ...


def build_mime_message(message: OutboundEmail) -> EmailMessage:
    mime = EmailMessage()
    mime["From"] = formataddr((message.from_name, message.from_email))
    mime["To"] = ", ".join(message.to)
    if message.cc:
        mime["Cc"] = ", ".join(message.cc)
    # Bcc recipients go in the envelope only
    mime["Reply-To"] = message.reply_to
    mime["Subject"] = message.subject
    mime["Message-ID"] = make_msgid(domain=message.from_email.rpartition("@")[2] or None)
    mime.set_content(message.text)
    mime.add_alternative(message.html, subtype="html")
    return mime


class SmtpEmailSender:
    """STARTTLS SMTP delivery; the blocking client runs in a worker thread."""

    def __init__(self, host: str, port: int, username: str, password: str, timeout: float = 15.0):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout

    def _deliver(self, message: OutboundEmail) -> str:
        mime = build_mime_message(message)
        recipients = [*message.to, *message.cc, *message.bcc]
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
            client.starttls()
            client.login(self.username, self.password)
            client.send_message(mime, from_addr=message.from_email, to_addrs=recipients)
        return mime["Message-ID"]

    async def send_email(self, message: OutboundEmail) -> EmailResult:
        try:
            message_id = await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                "SMTP delivery failed",
                extra={"kind": message.kind, "smtp_host": self.host, "error": str(exc)}
            )
            return EmailResult(ok=False, error=str(exc) or exc.__class__.__name__)

        logger.info("Email sent", extra={"kind": message.kind, "message_id": message_id})
        return EmailResult(ok=True, id=message_id)


class PreviewEmailSender:
    """Logs instead of delivering; used when SMTP is not configured."""

    async def send_email(self, message: OutboundEmail) -> EmailResult:
        logger.info(
            "Email preview (SMTP not configured)",
            extra={"kind": message.kind, "subject": message.subject, "recipients": len(message.to)}
        )
        return EmailResult(ok=True, id=f"preview-{uuid.uuid4()}", preview=True)
