"""Signed, expiring owner action links."""

import hashlib
import hmac
import logging
import re
import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Mapping, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit

from ..core.config import ConfigurationError

logger = logging.getLogger(__name__)

ACTION_PATH = "/api/owner-action"
PAYLOAD_DELIMITER = ":"

INQUIRY_ID_RE = re.compile(r"^[A-Za-z0-9-]{1,64}$")
PRICE_RE = re.compile(r"^(0|[1-9]\d*)(\.\d{1,2})?$")
CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
EXPIRES_RE = re.compile(r"^[1-9]\d{0,15}$")
SIGNATURE_RE = re.compile(r"^[0-9a-f]{64}$")


class ActionKind(str, Enum):
    """What a signed link lets the owner do."""
    APPROVE = "approve"
    DECLINE = "decline"


@dataclass(frozen=True)
class ActionParams:
    """
    The authenticated content of an action link.

    ``price`` is kept as the exact transmitted text so the signed payload
    is byte-for-byte what the owner's email client sent back.
    """

    inquiry_id: str
    action: ActionKind
    expires: int
    price: Optional[str] = None
    currency: Optional[str] = None

    @property
    def amount(self) -> Optional[Decimal]:
        return Decimal(self.price) if self.price is not None else None

    def payload(self) -> str:
        """Canonical string covered by the signature."""
        if self.action is ActionKind.APPROVE:
            fields = [self.inquiry_id, self.action.value, self.price, self.currency, str(self.expires)]
        else:
            # Declining commits to no amount
            fields = [self.inquiry_id, self.action.value, str(self.expires)]
        return PAYLOAD_DELIMITER.join(fields)

    def query(self) -> dict[str, str]:
        params = {"inquiryId": self.inquiry_id, "action": self.action.value}
        if self.action is ActionKind.APPROVE:
            params["price"] = self.price
            params["currency"] = self.currency
        params["expires"] = str(self.expires)
        return params


def format_price(price: Decimal) -> str:
    """Render an amount in the canonical two-decimal form used in links."""
    return f"{Decimal(price).quantize(Decimal('0.01')):f}"


class ActionLinkSigner:
    """
    HMAC-SHA256 signer for owner approve/decline links.

    Constructed once at startup from the configured secret; raises
    ConfigurationError immediately when the secret is missing.
    """

    def __init__(self, secret: str, clock: Callable[[], float] = time.time):
        if not secret or not secret.strip():
            raise ConfigurationError("An owner action secret is required to sign links")
        self._key = secret.encode("utf-8")
        self._clock = clock

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def sign(self, params: ActionParams) -> str:
        return hmac.new(self._key, params.payload().encode("utf-8"), hashlib.sha256).hexdigest()

    def verify(self, params: ActionParams, signature: str) -> bool:
        expected = self.sign(params)
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))

    def is_expired(self, expires_ms: int) -> bool:
        return expires_ms <= self.now_ms()

    def _expiry(self, ttl_hours: float) -> int:
        return self.now_ms() + int(ttl_hours * 3600 * 1000)

    def _build_url(self, base_url: str, params: ActionParams) -> str:
        query = params.query()
        query["sig"] = self.sign(params)
        return f"{base_url.rstrip('/')}{ACTION_PATH}?{urlencode(query)}"

    def generate_approve_url(
        self,
        base_url: str,
        inquiry_id: str,
        price: Decimal,
        currency: str,
        ttl_hours: float = 72,
    ) -> str:
        amount = Decimal(price)
        if amount <= 0:
            raise ValueError("An approve link must carry a positive price")
        params = ActionParams(
            inquiry_id=str(inquiry_id),
            action=ActionKind.APPROVE,
            expires=self._expiry(ttl_hours),
            price=format_price(amount),
            currency=currency.upper(),
        )
        return self._build_url(base_url, params)

    def generate_decline_url(self, base_url: str, inquiry_id: str, ttl_hours: float = 72) -> str:
        params = ActionParams(
            inquiry_id=str(inquiry_id),
            action=ActionKind.DECLINE,
            expires=self._expiry(ttl_hours),
        )
        return self._build_url(base_url, params)

    def parse_and_verify(self, url_or_query: Union[str, Mapping[str, str]]) -> Optional[ActionParams]:
        """
        Parse a signed link and return its parameters, or None.

        Missing or malformed fields, an unknown action, an expired timestamp
        and a bad signature all give the same None.
        """
        if isinstance(url_or_query, str):
            query = dict(parse_qsl(urlsplit(url_or_query).query, keep_blank_values=True))
        else:
            query = {key: url_or_query[key] for key in url_or_query}

        inquiry_id = query.get("inquiryId") or ""
        action_raw = query.get("action") or ""
        expires_raw = query.get("expires") or ""
        signature = query.get("sig") or ""

        if not INQUIRY_ID_RE.match(inquiry_id) or not EXPIRES_RE.match(expires_raw):
            return None
        if not SIGNATURE_RE.match(signature):
            return None
        try:
            action = ActionKind(action_raw)
        except ValueError:
            return None

        expires = int(expires_raw)
        # Checked on its own so a correctly signed but stale link still fails
        if self.is_expired(expires):
            return None

        if action is ActionKind.APPROVE:
            price = query.get("price") or ""
            currency = query.get("currency") or ""
            if not PRICE_RE.match(price) or Decimal(price) <= 0:
                return None
            if not CURRENCY_RE.match(currency):
                return None
            params = ActionParams(inquiry_id, action, expires, price=price, currency=currency)
        else:
            params = ActionParams(inquiry_id, action, expires)

        if not self.verify(params, signature):
            logger.warning(
                "Action link signature mismatch",
                extra={"inquiry_id": inquiry_id, "action": action.value}
            )
            return None
        return params
