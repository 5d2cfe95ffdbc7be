"""Fulfilment of a paid Stripe Checkout session."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from narra_lambda.clients.base import parse_json
from narra_lambda.clients.stripe import StripeClient
from narra_lambda.clients.supabase import eq
from narra_lambda.common.api.errors import RequestValidationError, UpstreamError
from narra_lambda.common.utils import generate_token, utc_now_iso
from narra_lambda.config import StripeSettings
from narra_lambda.handlers.accounts.gift_later import (
    DEFAULT_BUYER_NAME,
    GIFT_LATER_TYPE,
    GIFT_PURCHASES_TABLE,
    activation_url,
)
from narra_lambda.handlers.accounts.provisioning import AccountProvisioner
from narra_lambda.handlers.base import NarraApiHandler
from narra_lambda.handlers.gift_management.base import MANAGEMENT_TOKENS_TABLE
from narra_lambda.handlers.payments.model import VerifySessionRequest
from narra_lambda.notifications.templates import (
    gift_author_email,
    gift_later_ready_email,
    gift_sent_buyer_email,
    self_purchase_email,
)

ACCOUNT_EXISTS_MESSAGE = (
    "Este email ya está registrado. El pago fue procesado pero la cuenta ya existe. "
    "Por favor contacta a soporte."
)


@dataclass
class CheckoutPurchase:
    """Purchase details carried in the metadata of a checkout session."""

    session_id: str
    payment_intent: Optional[str]
    purchase_type: str
    gift_timing: str
    author_email: str
    author_name: str
    buyer_email: str
    buyer_name: str
    gift_message: str

    @classmethod
    def from_session(cls, session: Dict[str, Any]) -> "CheckoutPurchase":
        metadata = session.get("metadata") or {}
        return cls(
            session_id=session.get("id") or "",
            payment_intent=session.get("payment_intent"),
            purchase_type=metadata.get("purchase_type") or "self",
            gift_timing=metadata.get("gift_timing") or "now",
            author_email=metadata.get("author_email") or "",
            author_name=metadata.get("author_name") or "",
            buyer_email=metadata.get("buyer_email") or "",
            buyer_name=metadata.get("buyer_name") or "",
            gift_message=metadata.get("gift_message") or "",
        )

    @property
    def is_gift(self) -> bool:
        return self.purchase_type == "gift"

    @property
    def is_gift_later(self) -> bool:
        return self.is_gift and self.gift_timing == "later"


@dataclass
class StripeVerifySessionHandler(NarraApiHandler[VerifySessionRequest]):
    """Turn a paid checkout session into a Narra account.

    * A session already recorded in `gift_purchases` is not fulfilled twice.
    * A gift for later creates a pending `gift_later` purchase and emails the buyer the
      activation link.
    * Any other purchase creates the author's account, a management token and the
      purchase record, then emails the author (and the buyer of a gift).

    Only the auth user is required: the remaining records and every email are best
    effort once the payment went through.
    """

    body_required = True

    @classmethod
    def route_name(cls) -> str:
        return "stripe-verify-session"

    def validate_config(self) -> None:
        self.stripe_settings = StripeSettings.from_env()
        super().validate_config()

    def handle(self, request: VerifySessionRequest) -> Dict[str, Any]:
        session = self.paid_session(request.session_id)
        if (session.get("metadata") or {}).get("session_token") and self.already_processed(
            request.session_id
        ):
            self.log.info(f"Session {request.session_id} already processed")
            return {
                "success": True,
                "alreadyProcessed": True,
                "message": "Payment was already processed",
            }

        purchase = CheckoutPurchase.from_session({"id": request.session_id, **session})
        self.log.info(
            f"Processing {purchase.purchase_type} purchase",
            extra={"session_id": purchase.session_id, "gift_timing": purchase.gift_timing},
        )
        if purchase.is_gift_later:
            return self.fulfil_gift_later(purchase)
        return self.fulfil_account(purchase)

    def paid_session(self, session_id: str) -> Dict[str, Any]:
        stripe = StripeClient.from_settings(self.stripe_settings)
        response = stripe.get_checkout_session(session_id)
        if not response.ok:
            self.log.error(f"Could not retrieve session {session_id}: {response.text[:1000]}")
            raise RequestValidationError("Invalid session")
        session = parse_json(response, {})
        if session.get("payment_status") != "paid":
            self.log.info(f"Session {session_id} not paid: {session.get('payment_status')}")
            raise RequestValidationError(
                "Payment not completed", status=session.get("payment_status")
            )
        return session

    def already_processed(self, session_id: str) -> bool:
        try:
            rows = self.supabase.select(
                GIFT_PURCHASES_TABLE, {"stripe_session_id": eq(session_id)}, columns="id"
            )
        except (UpstreamError, requests.RequestException) as e:
            self.log.warning(f"Could not check whether {session_id} was processed: {e}")
            return False
        return bool(rows)

    def fulfil_gift_later(self, purchase: CheckoutPurchase) -> Dict[str, Any]:
        activation_token = generate_token()
        self.supabase.insert(
            GIFT_PURCHASES_TABLE,
            {
                "purchase_type": GIFT_LATER_TYPE,
                "author_name": "",
                "author_email": "",
                "buyer_email": purchase.buyer_email,
                "activation_token": activation_token,
                "token_used": False,
                "stripe_session_id": purchase.session_id,
                "stripe_payment_intent": purchase.payment_intent,
            },
            returning=False,
            error_message="Failed to create gift request",
        )
        self.send_email(
            gift_later_ready_email(
                activation_url(self.app_url, activation_token), tag="gift-later-paid"
            ),
            purchase.buyer_email,
        )
        return {"success": True, "type": GIFT_LATER_TYPE, "message": "Gift ready for activation"}

    def fulfil_account(self, purchase: CheckoutPurchase) -> Dict[str, Any]:
        provisioner = AccountProvisioner(self.supabase, self.app_url)
        provisioner.ensure_available(
            purchase.author_email,
            ACCOUNT_EXISTS_MESSAGE,
            error_message="Error checking email availability",
            alreadyExists=True,
        )
        account = provisioner.create_account(
            purchase.author_email,
            purchase.author_name,
            user_metadata={
                "purchase_type": purchase.purchase_type,
                "purchase_date": utc_now_iso(),
                "stripe_session_id": purchase.session_id,
            },
            account_error="Failed to create account",
            public_author_name=purchase.author_name,
            profile_required=False,
        )

        management_token = generate_token()
        self.record(
            MANAGEMENT_TOKENS_TABLE,
            {
                "author_user_id": account.user_id,
                "buyer_email": purchase.buyer_email if purchase.is_gift else purchase.author_email,
                "management_token": management_token,
            },
        )
        self.record(
            GIFT_PURCHASES_TABLE,
            {
                "user_id": account.user_id,
                "purchase_type": "gift_now" if purchase.is_gift else "self",
                "author_name": purchase.author_name,
                "author_email": purchase.author_email,
                "buyer_name": purchase.buyer_name or None,
                "buyer_email": purchase.buyer_email or None,
                "gift_message": purchase.gift_message or None,
                "stripe_session_id": purchase.session_id,
                "stripe_payment_intent": purchase.payment_intent,
            },
        )

        try:
            magic_link = provisioner.login_link(purchase.author_email)
        except (UpstreamError, requests.RequestException) as e:
            self.log.error(f"Could not generate magic link for {account.user_id}: {e}")
            magic_link = ""

        management_url = f"{self.app_url}/gift-management?token={management_token}"
        if purchase.is_gift:
            self.send_email(
                gift_author_email(
                    magic_link,
                    purchase.buyer_name or DEFAULT_BUYER_NAME,
                    purchase.gift_message or None,
                    purchase.author_name,
                    tag="purchase-gift-author",
                ),
                purchase.author_email,
            )
            if purchase.buyer_email:
                self.send_email(
                    gift_sent_buyer_email(
                        purchase.author_email, management_url, purchase.author_name
                    ),
                    purchase.buyer_email,
                )
        else:
            self.send_email(
                self_purchase_email(magic_link, management_url, purchase.author_name),
                purchase.author_email,
            )

        self.log.info(f"Account {account.user_id} created from session {purchase.session_id}")
        return {
            "success": True,
            "type": purchase.purchase_type,
            "message": "Account created successfully",
            "userId": account.user_id,
            "managementToken": management_token,
        }

    def record(self, table: str, row: Dict[str, Any]) -> None:
        """Insert a tracking row. Failures are logged only."""
        try:
            self.supabase.insert(table, row, returning=False)
        except (UpstreamError, requests.RequestException) as e:
            self.log.error(f"Could not insert into {table}: {e}")


stripe_verify_session_handler = StripeVerifySessionHandler.get_handler()
