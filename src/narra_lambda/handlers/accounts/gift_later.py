"""Gifts bought now and activated later by the buyer.

A `gift_later` purchase row carries an `activation_token`. The buyer receives an
activation link, validates it on the activation page and then activates the gift for
the recipient, which creates the recipient's premium account.
"""

from dataclasses import dataclass
from typing import Any, Dict, List

import requests

from narra_lambda.clients.supabase import eq
from narra_lambda.common.api.errors import (
    NotFoundError,
    RequestValidationError,
    UpstreamError,
)
from narra_lambda.common.utils import generate_token, utc_now_iso
from narra_lambda.handlers.accounts.model import (
    GiftLaterActivateRequest,
    GiftLaterPurchaseRequest,
    GiftLaterTokenRequest,
)
from narra_lambda.handlers.accounts.provisioning import AccountProvisioner
from narra_lambda.handlers.base import NarraApiHandler
from narra_lambda.notifications.templates import (
    gift_activated_buyer_email,
    gift_author_email,
    gift_later_ready_email,
)

GIFT_PURCHASES_TABLE = "gift_purchases"
GIFT_LATER_TYPE = "gift_later"
DEFAULT_BUYER_NAME = "Alguien especial"


def activation_url(app_url: str, activation_token: str) -> str:
    return f"{app_url}/gift-activation?token={activation_token}"


@dataclass
class GiftLaterRequestHandler(NarraApiHandler[GiftLaterPurchaseRequest]):
    """Register a gift to activate later and email the buyer the activation link."""

    body_required = True
    email_config_message = "Email service not configured"

    @classmethod
    def route_name(cls) -> str:
        return "gift-later-request"

    def handle(self, request: GiftLaterPurchaseRequest) -> Dict[str, Any]:
        activation_token = generate_token()
        self.supabase.insert(
            GIFT_PURCHASES_TABLE,
            {
                "purchase_type": GIFT_LATER_TYPE,
                "author_name": "",
                "author_email": "",
                "buyer_email": request.buyer_email,
                "activation_token": activation_token,
                "token_used": False,
            },
            error_message="Error al crear el registro de compra",
        )
        self.log.info(f"Gift later purchase created for {request.buyer_email}")

        self.send_email(
            gift_later_ready_email(activation_url(self.app_url, activation_token)),
            request.buyer_email,
        )
        return {
            "success": True,
            "message": "Regalo creado exitosamente. Revisa tu email para activarlo cuando quieras.",
        }


@dataclass
class GiftLaterValidateHandler(NarraApiHandler[GiftLaterTokenRequest]):
    """Check an activation token before showing the activation form.

    Every error response carries `valid: false`.
    """

    @classmethod
    def route_name(cls) -> str:
        return "gift-later-validate"

    @classmethod
    def route_methods(cls) -> List[str]:
        return ["GET"]

    def handle(self, request: GiftLaterTokenRequest) -> Dict[str, Any]:
        purchase = find_pending_purchase(
            self, request.token, lookup_error="Error al validar token", valid=False
        )
        return {"valid": True, "buyerEmail": purchase.get("buyer_email")}


@dataclass
class GiftLaterActivateHandler(NarraApiHandler[GiftLaterActivateRequest]):
    """Activate a gift: create the recipient's account and email both parties."""

    body_required = True
    email_config_message = "Email service not configured"

    @classmethod
    def route_name(cls) -> str:
        return "gift-later-activate"

    def handle(self, request: GiftLaterActivateRequest) -> Dict[str, Any]:
        purchase = find_pending_purchase(self, request.token, lookup_error="Error al verificar token")

        provisioner = AccountProvisioner(self.supabase, self.app_url)
        provisioner.ensure_available(
            request.author_email,
            "Este email ya está registrado. Si ya tienes una cuenta, inicia sesión en /app.",
        )
        activated_at = utc_now_iso()
        account = provisioner.create_account(
            request.author_email,
            request.author_name,
            user_metadata={
                "purchase_type": GIFT_LATER_TYPE,
                "purchase_date": purchase.get("created_at"),
                "activated_at": activated_at,
            },
            public_author_name=request.author_name,
        )

        try:
            self.supabase.update(
                GIFT_PURCHASES_TABLE,
                {"id": eq(purchase.get("id"))},
                {
                    "user_id": account.user_id,
                    "author_name": request.author_name,
                    "author_email": request.author_email,
                    "buyer_name": request.buyer_name,
                    "gift_message": request.gift_message,
                    "token_used": True,
                    "activated_at": activated_at,
                    "updated_at": activated_at,
                },
            )
        except (UpstreamError, requests.RequestException) as e:
            self.log.error(f"Could not mark gift purchase {purchase.get('id')} as used: {e}")

        magic_link = provisioner.login_link(request.author_email)

        self.send_email(
            gift_author_email(
                magic_link,
                request.buyer_name or DEFAULT_BUYER_NAME,
                request.gift_message,
                request.author_name,
            ),
            request.author_email,
        )
        if purchase.get("buyer_email"):
            self.send_email(
                gift_activated_buyer_email(request.author_email, request.author_name),
                purchase["buyer_email"],
            )

        self.log.info(f"Gift {purchase.get('id')} activated for {account.user_id}")
        return {
            "success": True,
            "message": "Regalo activado exitosamente",
            "userId": account.user_id,
        }


def find_pending_purchase(
    handler: NarraApiHandler, token: str, lookup_error: str, **extra: Any
) -> Dict[str, Any]:
    """Resolve an unused gift later purchase by activation token.

    Args:
        handler (NarraApiHandler): Handler whose Supabase client is used.
        token (str): Activation token.
        lookup_error (str): Message when the lookup itself fails.
        **extra: Additional fields for every error body.

    Raises:
        NotFoundError: If the token is unknown.
        RequestValidationError: If the gift was activated already or is not a gift later.
    """
    try:
        purchase = handler.supabase.select_one(
            GIFT_PURCHASES_TABLE, {"activation_token": eq(token)}, error_message=lookup_error
        )
    except UpstreamError as e:
        raise UpstreamError(lookup_error, upstream_status=e.upstream_status, **extra) from e

    if purchase is None:
        raise NotFoundError("Token no válido", **extra)
    if purchase.get("token_used"):
        raise RequestValidationError("Este regalo ya fue activado", **extra)
    if purchase.get("purchase_type") != GIFT_LATER_TYPE:
        raise RequestValidationError("Token no válido para activación", **extra)
    return purchase


gift_later_request_handler = GiftLaterRequestHandler.get_handler()
gift_later_validate_handler = GiftLaterValidateHandler.get_handler()
gift_later_activate_handler = GiftLaterActivateHandler.get_handler()
