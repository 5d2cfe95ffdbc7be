__all__ = [
    "PriceQuote",
    "StripePriceHandler",
    "quote_price",
]

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from narra_lambda.clients.base import parse_json, raise_for_upstream
from narra_lambda.clients.stripe import StripeClient
from narra_lambda.common.api.model import EmptyRequest
from narra_lambda.common.utils import js_round
from narra_lambda.config import StripeSettings
from narra_lambda.handlers.base import NarraApiHandler


@dataclass
class PriceQuote:
    """Price of the product after the coupon, in cents."""

    original_cents: int
    discounted_cents: int
    discount_cents: int
    discount_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalPrice": self.original_cents / 100,
            "discountedPrice": self.discounted_cents / 100,
            "discountAmount": self.discount_cents / 100,
            "originalPriceCents": self.original_cents,
            "discountedPriceCents": self.discounted_cents,
            "discountAmountCents": self.discount_cents,
            "discountPercentage": self.discount_percentage,
        }


def quote_price(original_cents: int, coupon: Optional[Dict[str, Any]] = None) -> PriceQuote:
    """Apply a Stripe coupon to a unit amount.

    Only valid coupons apply. A `percent_off` coupon derives the discount from the
    percentage, an `amount_off` coupon derives the percentage from the discount. Both
    are rounded half up to whole cents / percents.

    Example:
        >>> quote_price(30000, {"valid": True, "percent_off": 25}).discounted_cents
        22500
    """
    if not coupon or not coupon.get("valid"):
        return PriceQuote(original_cents, original_cents, 0, 0)
    if coupon.get("percent_off"):
        percentage = coupon["percent_off"]
        discount = js_round(original_cents * (percentage / 100))
    elif coupon.get("amount_off"):
        discount = coupon["amount_off"]
        percentage = js_round(discount / original_cents * 100) if original_cents else 0
    else:
        return PriceQuote(original_cents, original_cents, 0, 0)
    return PriceQuote(original_cents, original_cents - discount, discount, percentage)


@dataclass
class StripePriceHandler(NarraApiHandler[EmptyRequest]):
    """Current product price with the configured coupon applied.

    A coupon that cannot be fetched or is no longer valid leaves the price untouched.
    """

    supabase_config_message = None
    decode_body = False

    @classmethod
    def route_name(cls) -> str:
        return "stripe-price"

    @classmethod
    def route_methods(cls) -> List[str]:
        return ["GET"]

    def validate_config(self) -> None:
        self.stripe_settings = StripeSettings.from_env()
        super().validate_config()

    def handle(self, request: EmptyRequest) -> Dict[str, Any]:
        settings = self.stripe_settings
        stripe = StripeClient.from_settings(settings)
        price = parse_json(
            raise_for_upstream(
                stripe.get_price(settings.price_id), "Failed to fetch price from Stripe"
            ),
            {},
        )
        coupon = self.fetch_coupon(stripe, settings.coupon_id)
        quote = quote_price(price.get("unit_amount") or 0, coupon)
        return {
            "success": True,
            **quote.to_dict(),
            "currency": (price.get("currency") or "").upper(),
            "hasCoupon": bool(coupon and coupon.get("valid")),
            "couponName": (coupon or {}).get("name") or None,
            "priceId": settings.price_id,
            "productId": price.get("product"),
        }

    def fetch_coupon(self, stripe: StripeClient, coupon_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not coupon_id:
            return None
        response = stripe.get_coupon(coupon_id)
        if not response.ok:
            self.log.warning(f"Coupon {coupon_id} not found or invalid ({response.status_code})")
            return None
        return parse_json(response)


stripe_price_handler = StripePriceHandler.get_handler()
