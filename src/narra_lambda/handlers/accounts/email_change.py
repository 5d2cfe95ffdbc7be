"""Self service login email change.

A change is requested by the signed in user, confirmed from the new address and can
be reverted from the old address at any time, even after confirmation.
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
from narra_lambda.handlers.accounts.model import EmailChangeRequest, EmailChangeTokenRequest
from narra_lambda.handlers.base import NarraApiHandler
from narra_lambda.notifications.templates import (
    email_change_new_address_email,
    email_change_old_address_email,
)

EMAIL_CHANGE_REQUESTS_TABLE = "email_change_requests"
EMAIL_TAKEN_MESSAGE = "Este email ya está registrado con otra cuenta. Por favor usa un email diferente."


@dataclass
class EmailChangeRequestHandler(NarraApiHandler[EmailChangeRequest]):
    """Open an email change for the signed in user.

    Pending requests of the user are cancelled. The old address gets a revert link
    (best effort) and the new address a confirmation link (required).
    """

    body_required = True
    email_config_message = "Email service not configured"

    @classmethod
    def route_name(cls) -> str:
        return "email-change-request"

    def handle(self, request: EmailChangeRequest) -> Dict[str, Any]:
        user = self.authenticated_user()
        user_id = user["id"]
        old_email = user.get("email") or ""

        if request.new_email == old_email.lower():
            raise RequestValidationError("El nuevo email es igual al actual")
        if self.supabase.is_email_taken(
            request.new_email,
            exclude_user_id=user_id,
            error_message="Error al verificar disponibilidad del email",
        ):
            raise RequestValidationError(EMAIL_TAKEN_MESSAGE)

        try:
            self.supabase.update(
                EMAIL_CHANGE_REQUESTS_TABLE,
                {"user_id": eq(user_id), "status": eq("pending")},
                {"status": "cancelled", "cancelled_at": utc_now_iso()},
            )
        except (UpstreamError, requests.RequestException) as e:
            self.log.error(f"Could not cancel pending email changes of {user_id}: {e}")

        confirmation_token = generate_token()
        revert_token = generate_token()
        self.supabase.insert(
            EMAIL_CHANGE_REQUESTS_TABLE,
            {
                "user_id": user_id,
                "old_email": old_email,
                "new_email": request.new_email,
                "confirmation_token": confirmation_token,
                "revert_token": revert_token,
                "status": "pending",
            },
            error_message="Error al crear solicitud de cambio",
        )
        self.log.info(f"Email change requested by {user_id}")

        confirm_link = f"{self.app_url}/app/email-change-confirm?token={confirmation_token}"
        revert_link = f"{self.app_url}/app/email-change-revert?token={revert_token}"

        self.send_email(
            email_change_old_address_email(old_email, request.new_email, revert_link), old_email
        )
        self.deliver_email(
            email_change_new_address_email(request.new_email, confirm_link),
            request.new_email,
            error_message="Error al enviar email de confirmación",
        )
        return {
            "success": True,
            "message": "Se han enviado correos de confirmación. Revisa ambas bandejas de entrada.",
        }


@dataclass
class EmailChangeTokenHandler(NarraApiHandler[EmailChangeTokenRequest]):
    """Base for the confirm and revert links, reachable by GET (link) or POST (app)."""

    @classmethod
    def route_methods(cls) -> List[str]:
        return ["GET", "POST"]

    def change_request(self, token_column: str, token: str) -> Dict[str, Any]:
        row = self.supabase.select_one(
            EMAIL_CHANGE_REQUESTS_TABLE,
            {token_column: eq(token)},
            error_message="Error al buscar solicitud",
        )
        if row is None:
            raise NotFoundError("Solicitud no encontrada o inválida")
        return row

    def mark(self, change_request: Dict[str, Any], status: str, timestamp_column: str) -> None:
        """Record the new status of a request. Failures are logged only."""
        try:
            self.supabase.update(
                EMAIL_CHANGE_REQUESTS_TABLE,
                {"id": eq(change_request.get("id"))},
                {"status": status, timestamp_column: utc_now_iso()},
            )
        except (UpstreamError, requests.RequestException) as e:
            self.log.error(
                f"Could not mark email change {change_request.get('id')} as {status}: {e}"
            )


@dataclass
class EmailChangeConfirmHandler(EmailChangeTokenHandler):
    @classmethod
    def route_name(cls) -> str:
        return "email-change-confirm"

    def handle(self, request: EmailChangeTokenRequest) -> Dict[str, Any]:
        change_request = self.change_request("confirmation_token", request.token)
        status = change_request.get("status")
        if status != "pending":
            state = "confirmada" if status == "confirmed" else "cancelada"
            raise RequestValidationError(f"Esta solicitud ya fue {state}.")

        user_id = change_request.get("user_id")
        new_email = change_request.get("new_email") or ""
        if self.supabase.is_email_taken(
            new_email,
            exclude_user_id=user_id,
            error_message="Error al verificar disponibilidad del email",
        ):
            self.mark(change_request, "cancelled", "cancelled_at")
            raise RequestValidationError(
                "Este email ya está registrado con otra cuenta. La solicitud ha sido cancelada."
            )

        self.supabase.update_user(
            user_id,
            {"email": new_email, "email_confirm": True},
            error_message="Error al actualizar el email",
        )
        self.mark(change_request, "confirmed", "confirmed_at")
        self.log.info(f"Email change {change_request.get('id')} confirmed")
        return {
            "success": True,
            "message": "Email cambiado exitosamente. Ahora puedes iniciar sesión con tu nuevo email.",
            "newEmail": new_email,
        }


@dataclass
class EmailChangeRevertHandler(EmailChangeTokenHandler):
    """Undo an email change. A confirmed change restores the old address."""

    @classmethod
    def route_name(cls) -> str:
        return "email-change-revert"

    def handle(self, request: EmailChangeTokenRequest) -> Dict[str, Any]:
        change_request = self.change_request("revert_token", request.token)
        status = change_request.get("status")
        if status == "reverted":
            raise RequestValidationError("Esta solicitud ya fue revertida anteriormente.")

        old_email = change_request.get("old_email")
        was_confirmed = status == "confirmed"
        if was_confirmed:
            self.supabase.update_user(
                change_request.get("user_id"),
                {"email": old_email, "email_confirm": True},
                error_message="Error al revertir el email",
            )
        self.mark(change_request, "reverted", "reverted_at")

        if was_confirmed:
            message = f"El cambio de email ha sido revertido exitosamente. Tu email es ahora {old_email}."
        else:
            message = f"La solicitud de cambio de email ha sido cancelada. Tu email sigue siendo {old_email}."
        return {
            "success": True,
            "message": message,
            "oldEmail": old_email,
            "wasConfirmed": was_confirmed,
        }


email_change_request_handler = EmailChangeRequestHandler.get_handler()
email_change_confirm_handler = EmailChangeConfirmHandler.get_handler()
email_change_revert_handler = EmailChangeRevertHandler.get_handler()
