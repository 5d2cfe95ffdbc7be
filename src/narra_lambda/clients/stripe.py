"""Stripe REST client (form encoded requests)."""

__all__ = [
    "StripeClient",
    "flatten_form",
]

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests
from aibs_informatics_core.utils.logging import get_logger

from narra_lambda.clients.base import HttpClient
from narra_lambda.config import StripeSettings

logger = get_logger(__name__)

STRIPE_API_URL = "https://api.stripe.com/v1"


def flatten_form(params: Mapping[str, Any], prefix: Optional[str] = None) -> List[Tuple[str, str]]:
    """Flatten nested params into Stripe's bracket notation.

    Example:
        >>> flatten_form({"line_items": [{"price": "p", "quantity": 1}]})
        [('line_items[0][price]', 'p'), ('line_items[0][quantity]', '1')]
    """
    pairs: List[Tuple[str, str]] = []
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, Mapping):
            pairs.extend(flatten_form(value, name))
        elif isinstance(value, (list, tuple)):
            pairs.extend(flatten_form({str(i): item for i, item in enumerate(value)}, name))
        elif isinstance(value, bool):
            pairs.append((name, "true" if value else "false"))
        else:
            pairs.append((name, str(value)))
    return pairs


@dataclass
class StripeClient(HttpClient):
    base_url: str = STRIPE_API_URL
    secret_key: str = ""

    @classmethod
    def from_settings(cls, settings: StripeSettings) -> "StripeClient":
        return cls(secret_key=settings.secret_key)

    def default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/x-www-form-urlencoded",
        }

    def create_checkout_session(self, params: Mapping[str, Any]) -> requests.Response:
        return self.request("POST", "/checkout/sessions", data=flatten_form(params))

    def get_checkout_session(self, session_id: str) -> requests.Response:
        return self.request("GET", f"/checkout/sessions/{session_id}")

    def get_price(self, price_id: str) -> requests.Response:
        return self.request("GET", f"/prices/{price_id}")

    def get_coupon(self, coupon_id: str) -> requests.Response:
        return self.request("GET", f"/coupons/{coupon_id}")
