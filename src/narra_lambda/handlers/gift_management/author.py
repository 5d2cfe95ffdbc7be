"""Author details, email change and login link for the gift manager."""

from dataclasses import dataclass
from typing import Any, Dict, List

import requests

from narra_lambda.clients.supabase import eq
from narra_lambda.common.api.errors import RequestValidationError, UpstreamError
from narra_lambda.common.utils import utc_now_iso
from narra_lambda.handlers.gift_management.base import (
    MANAGEMENT_TOKENS_TABLE,
    SUBSCRIBERS_TABLE,
    ManagementTokenHandler,
)
from narra_lambda.handlers.gift_management.model import (
    ChangeAuthorEmailRequest,
    ManagementTokenRequest,
)
from narra_lambda.notifications.templates import (
    email_changed_by_manager_email,
    manager_magic_link_email,
)


@dataclass
class GiftManagementGetAuthorHandler(ManagementTokenHandler[ManagementTokenRequest]):
    """Return the author account and its subscribers for the management page."""

    body_required = False
    invalid_token_message = "Token inválido o expirado"

    @classmethod
    def route_name(cls) -> str:
        return "gift-management-get-author"

    @classmethod
    def route_methods(cls) -> List[str]:
        return ["GET"]

    def handle(self, request: ManagementTokenRequest) -> Dict[str, Any]:
        token_row = self.management_token(request.token)
        author_user_id = token_row.get("author_user_id")
        self.touch_token(token_row)

        try:
            author = self.supabase.get_user(author_user_id)
        except UpstreamError:
            author = None
        if author is None:
            raise UpstreamError("Error al obtener datos del autor")

        try:
            subscribers = self.supabase.select(
                SUBSCRIBERS_TABLE,
                {"user_id": eq(author_user_id)},
                columns="id,name,email,status,created_at",
                order="created_at.asc",
            )
        except (UpstreamError, requests.RequestException) as e:
            self.log.error(f"Could not list subscribers of {author_user_id}: {e}")
            subscribers = []

        return {
            "success": True,
            "author": {
                "id": author_user_id,
                "email": author.get("email"),
                "name": self.author_display_name(author_user_id, author.get("email")),
                "createdAt": author.get("created_at"),
            },
            "buyerEmail": token_row.get("buyer_email"),
            "subscribers": [
                {
                    "id": subscriber.get("id"),
                    "name": subscriber.get("name"),
                    "email": subscriber.get("email"),
                    "status": subscriber.get("status"),
                    "addedAt": subscriber.get("created_at"),
                }
                for subscriber in subscribers
            ],
        }

    def touch_token(self, token_row: Dict[str, Any]) -> None:
        try:
            self.supabase.update(
                MANAGEMENT_TOKENS_TABLE,
                {"id": eq(token_row.get("id"))},
                {"last_used_at": utc_now_iso()},
            )
        except (UpstreamError, requests.RequestException) as e:
            self.log.error(f"Could not update last_used_at of management token: {e}")


@dataclass
class GiftManagementChangeEmailHandler(ManagementTokenHandler[ChangeAuthorEmailRequest]):
    """Change the author's login email on behalf of the author."""

    @classmethod
    def route_name(cls) -> str:
        return "gift-management-change-email"

    def handle(self, request: ChangeAuthorEmailRequest) -> Dict[str, Any]:
        author_user_id = self.management_token(request.token).get("author_user_id")

        if self.supabase.is_email_taken(
            request.new_email,
            exclude_user_id=author_user_id,
            error_message="Error al verificar disponibilidad del email",
        ):
            raise RequestValidationError(
                "Este email ya está registrado con otra cuenta. Por favor usa un email diferente."
            )

        self.supabase.update_user(
            author_user_id,
            {"email": request.new_email, "email_confirm": True},
            error_message="Error al actualizar el email",
        )
        self.log.info(f"Author {author_user_id} email changed by gift manager")

        self.send_email(email_changed_by_manager_email(request.new_email), request.new_email)
        return {"success": True, "message": "Email actualizado exitosamente"}


@dataclass
class GiftManagementSendMagicLinkHandler(ManagementTokenHandler[ManagementTokenRequest]):
    """Email the author a Supabase login link."""

    email_config_message = "Email service not configured"

    @classmethod
    def route_name(cls) -> str:
        return "gift-management-send-magic-link"

    def handle(self, request: ManagementTokenRequest) -> Dict[str, Any]:
        author_user_id = self.management_token(request.token).get("author_user_id")

        try:
            author = self.supabase.get_user(author_user_id)
        except UpstreamError:
            author = None
        if not author or not author.get("email"):
            raise UpstreamError("Error al obtener datos del autor")
        author_email = author["email"]

        link_data = self.supabase.generate_link(author_email)
        magic_link = link_data.get("action_link") or (link_data.get("properties") or {}).get(
            "action_link"
        )
        if not magic_link:
            raise UpstreamError("Error al generar enlace de acceso")
        magic_link = magic_link.replace(f"{self.app_url}/#", f"{self.app_url}/app#")

        self.deliver_email(
            manager_magic_link_email(author_email, magic_link),
            author_email,
            error_message="Error al enviar el email",
        )
        return {"success": True, "message": "Enlace de acceso enviado exitosamente"}


gift_management_get_author_handler = GiftManagementGetAuthorHandler.get_handler()
gift_management_change_email_handler = GiftManagementChangeEmailHandler.get_handler()
gift_management_send_magic_link_handler = GiftManagementSendMagicLinkHandler.get_handler()
