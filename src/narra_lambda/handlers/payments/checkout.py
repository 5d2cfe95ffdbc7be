from dataclasses import dataclass
from typing import Any, Dict

from narra_lambda.clients.base import parse_json, raise_for_upstream
from narra_lambda.clients.stripe import StripeClient
from narra_lambda.common.utils import generate_token
from narra_lambda.config import StripeSettings
from narra_lambda.handlers.base import NarraApiHandler
from narra_lambda.handlers.payments.model import CheckoutRequest

CHECKOUT_LOCALE = "es"


def checkout_session_params(
    request: CheckoutRequest, settings: StripeSettings, app_url: str, session_token: str
) -> Dict[str, Any]:
    """Stripe Checkout session parameters for a purchase.

    The metadata travels through Checkout and is read back when the session is verified.
    """
    metadata = {
        "session_token": session_token,
        "purchase_type": request.purchase_type,
        "author_email": request.author_email,
        "author_name": request.author_name,
    }
    if request.is_gift:
        metadata["gift_timing"] = request.gift_timing
        metadata["buyer_email"] = request.buyer_email
        metadata["buyer_name"] = request.buyer_name
        if request.gift_message:
            metadata["gift_message"] = request.gift_message

    timing = "&timing=later" if request.gift_timing == "later" else ""
    params: Dict[str, Any] = {
        "mode": "payment",
        "line_items": [{"price": settings.price_id, "quantity": 1}],
        "success_url": (
            f"{app_url}/purchase/success?session_id={{CHECKOUT_SESSION_ID}}"
            f"&type={request.purchase_type}{timing}"
        ),
        "cancel_url": f"{app_url}/purchase/checkout?type={request.purchase_type}&cancelled=true",
        "customer_email": request.customer_email,
        "metadata": metadata,
        "payment_method_types": ["card"],
        "locale": CHECKOUT_LOCALE,
    }
    if settings.coupon_id:
        params["discounts"] = [{"coupon": settings.coupon_id}]
    return params


@dataclass
class StripeCreateCheckoutHandler(NarraApiHandler[CheckoutRequest]):
    """Create a Stripe Checkout session with the launch coupon applied."""

    body_required = True
    supabase_config_message = None

    @classmethod
    def route_name(cls) -> str:
        return "stripe-create-checkout"

    def validate_config(self) -> None:
        self.stripe_settings = StripeSettings.from_env()
        super().validate_config()

    def handle(self, request: CheckoutRequest) -> Dict[str, Any]:
        stripe = StripeClient.from_settings(self.stripe_settings)
        session_token = generate_token()
        params = checkout_session_params(
            request, self.stripe_settings, self.app_url, session_token
        )
        response = raise_for_upstream(
            stripe.create_checkout_session(params), "Failed to create checkout session"
        )
        session = parse_json(response, {})
        self.log.info(
            f"Checkout session {session.get('id')} created",
            extra={"purchase_type": request.purchase_type, "gift_timing": request.gift_timing},
        )
        return {
            "success": True,
            "sessionId": session.get("id"),
            "url": session.get("url"),
            "sessionToken": session_token,
        }


stripe_create_checkout_handler = StripeCreateCheckoutHandler.get_handler()
