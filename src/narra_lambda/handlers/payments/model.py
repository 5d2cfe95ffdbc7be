__all__ = [
    "CheckoutRequest",
    "PURCHASE_TYPES",
    "VerifySessionRequest",
]

from dataclasses import dataclass
from typing import Optional

from aibs_informatics_core.models.base import StringField, custom_field

from narra_lambda.common.api.errors import RequestValidationError
from narra_lambda.common.api.model import ApiRequest, normalize_email

PURCHASE_TYPES = ("self", "gift")
GIFT_MESSAGE_MAX_LENGTH = 500


def _strip(value: Optional[str]) -> str:
    return (value or "").strip()


@dataclass
class CheckoutRequest(ApiRequest):
    """Checkout for the buyer's own account (`self`) or for someone else (`gift`).

    A `gift` with `gift_timing = later` is activated by the buyer afterwards, so the
    author fields may be empty.
    """

    purchase_type: str = custom_field(mm_field=StringField(), default="")
    author_email: str = custom_field(mm_field=StringField(), default="")
    author_name: str = custom_field(mm_field=StringField(), default="")
    buyer_email: str = custom_field(mm_field=StringField(), default="")
    buyer_name: str = custom_field(mm_field=StringField(), default="")
    gift_message: str = custom_field(mm_field=StringField(), default="")
    gift_timing: str = custom_field(mm_field=StringField(), default="now")

    def validate_request(self) -> None:
        self.purchase_type = _strip(self.purchase_type)
        if self.purchase_type not in PURCHASE_TYPES:
            raise RequestValidationError("Invalid purchase type")
        self.author_email = normalize_email(self.author_email)
        self.buyer_email = normalize_email(self.buyer_email)
        self.author_name = _strip(self.author_name)
        self.buyer_name = _strip(self.buyer_name)
        self.gift_message = _strip(self.gift_message)[:GIFT_MESSAGE_MAX_LENGTH]
        self.gift_timing = _strip(self.gift_timing) or "now"

    @property
    def is_gift(self) -> bool:
        return self.purchase_type == "gift"

    @property
    def is_gift_later(self) -> bool:
        return self.is_gift and self.gift_timing == "later"

    @property
    def customer_email(self) -> str:
        """Email prefilled on the Checkout page: whoever is paying."""
        if self.is_gift_later:
            return self.buyer_email
        if self.is_gift:
            return self.buyer_email or self.author_email
        return self.author_email


@dataclass
class VerifySessionRequest(ApiRequest):
    session_id: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.session_id = _strip(self.session_id)
        if not self.session_id:
            raise RequestValidationError("Session ID is required")
