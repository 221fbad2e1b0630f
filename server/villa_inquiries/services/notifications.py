"""Routing of owner-facing and guest-facing email."""

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.config import Settings
from ..core.observability import record_email
from ..models.inquiry import Inquiry
from ..models.listing import Listing
from ..templates.emails import RenderedEmail, StayDetails
from .email_transport import EmailResult, EmailSender, OutboundEmail

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutingConfig:
    operator_inbox: str
    public_contact_email: str
    from_email: str
    from_name: str

    @classmethod
    def from_settings(cls, config: Settings) -> "RoutingConfig":
        return cls(
            operator_inbox=config.operator_inbox,
            public_contact_email=config.public_contact_email,
            from_email=config.from_email,
            from_name=config.from_name,
        )


def stay_details(inquiry: Inquiry, listing: Optional[Listing], default_name: str) -> StayDetails:
    """Message context for a stored inquiry."""
    return StayDetails(
        guest_name=inquiry.guest_name,
        guest_email=inquiry.guest_email,
        check_in=inquiry.check_in,
        check_out=inquiry.check_out,
        party_size=inquiry.party_size,
        listing_name=listing.name if listing else default_name,
        phone=inquiry.guest_phone,
        occasion=inquiry.occasion,
        notes=inquiry.message,
        language=inquiry.language,
    )


class Notifier:
    """
    Sends the two message kinds with fixed routing.

    Owner notices go to the operator inbox with the owner blind-copied and
    replies directed at the guest. Guest messages go to the guest with the
    operator inbox blind-copied; their reply-to is the owner or the public
    contact address and never the operator inbox.
    """

    def __init__(self, sender: EmailSender, routing: RoutingConfig):
        self.sender = sender
        self.routing = routing

    def _brand(self, listing_name: Optional[str]) -> str:
        return listing_name or self.routing.from_name

    def guest_reply_to(self, owner_email: Optional[str]) -> str:
        candidate = (owner_email or "").strip()
        if not candidate or candidate.lower() == self.routing.operator_inbox.lower():
            return self.routing.public_contact_email
        return candidate

    def leaks_operator_inbox(self, message: OutboundEmail) -> bool:
        inbox = self.routing.operator_inbox.lower()
        visible = [*message.to, message.reply_to, message.subject, message.html, message.text]
        return any(inbox in part.lower() for part in visible)

    async def _send(self, message: OutboundEmail) -> EmailResult:
        result = await self.sender.send_email(message)
        record_email(message.kind, result.ok)
        if not result.ok:
            logger.error(
                "Email send failed",
                extra={"kind": message.kind, "error": result.error}
            )
        return result

    async def send_owner_notification(
        self,
        email: RenderedEmail,
        owner_email: Optional[str],
        guest_email: str,
        listing_name: Optional[str] = None,
        kind: str = "owner_inquiry",
    ) -> EmailResult:
        bcc = ()
        if owner_email and owner_email.lower() != self.routing.operator_inbox.lower():
            bcc = (owner_email,)
        message = OutboundEmail(
            to=(self.routing.operator_inbox,),
            bcc=bcc,
            subject=email.subject,
            html=email.html,
            text=email.text,
            reply_to=guest_email,
            from_email=self.routing.from_email,
            from_name=self._brand(listing_name),
            kind=kind,
        )
        return await self._send(message)

    async def send_guest_email(
        self,
        email: RenderedEmail,
        guest_email: str,
        owner_email: Optional[str] = None,
        listing_name: Optional[str] = None,
        kind: str = "guest",
    ) -> EmailResult:
        message = OutboundEmail(
            to=(guest_email,),
            bcc=(self.routing.operator_inbox,),
            subject=email.subject,
            html=email.html,
            text=email.text,
            reply_to=self.guest_reply_to(owner_email),
            from_email=self.routing.from_email,
            from_name=self._brand(listing_name),
            kind=kind,
        )
        if self.leaks_operator_inbox(message):
            logger.error("Refusing guest email exposing the operator inbox", extra={"kind": kind})
            record_email(kind, False)
            return EmailResult(ok=False, error="guest email would expose the operator inbox")
        return await self._send(message)
