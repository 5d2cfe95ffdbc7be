"""Subscriber administration for the gift manager."""

from dataclasses import dataclass
from typing import Any, Dict
from urllib.parse import quote

import requests

from narra_lambda.clients.supabase import eq
from narra_lambda.common.api.errors import (
    NotFoundError,
    RequestValidationError,
    UpstreamError,
)
from narra_lambda.common.utils import generate_token, utc_now_iso
from narra_lambda.handlers.gift_management.base import SUBSCRIBERS_TABLE, ManagementTokenHandler
from narra_lambda.handlers.gift_management.model import (
    AddSubscriberRequest,
    SubscriberActionRequest,
)
from narra_lambda.notifications.templates import (
    subscriber_link_resend_email,
    subscriber_welcome_email,
)


@dataclass
class GiftManagementAddSubscriberHandler(ManagementTokenHandler[AddSubscriberRequest]):
    """Add a confirmed subscriber to the author's private blog and send the welcome email.

    The welcome email is best effort: `emailSent` reports whether it was accepted.
    """

    email_config_message = "Email service not configured"

    @classmethod
    def route_name(cls) -> str:
        return "gift-management-add-subscriber"

    def handle(self, request: AddSubscriberRequest) -> Dict[str, Any]:
        author_user_id = self.management_token(request.token).get("author_user_id")
        author_name = self.author_display_name(author_user_id, self.author_email(author_user_id))

        existing = self.supabase.select(
            SUBSCRIBERS_TABLE,
            {"user_id": eq(author_user_id), "email": eq(request.email)},
            columns="id",
            error_message="Error al verificar suscriptor",
        )
        if existing:
            raise RequestValidationError("Este suscriptor ya existe para este autor")

        access_token = generate_token()
        now = utc_now_iso()
        rows = self.supabase.insert(
            SUBSCRIBERS_TABLE,
            {
                "user_id": author_user_id,
                "name": request.name,
                "email": request.email,
                "status": "confirmed",
                "access_token": access_token,
                "access_token_created_at": now,
                "created_at": now,
            },
            error_message="Error al agregar suscriptor",
        )
        if not rows:
            raise UpstreamError("Error al agregar suscriptor")
        subscriber = rows[0]
        self.log.info(f"Subscriber {subscriber.get('id')} added for author {author_user_id}")

        link = (
            f"{self.app_url}/blog/subscriber/{subscriber.get('id')}"
            f"?author={author_user_id}&subscriber={subscriber.get('id')}"
            f"&token={access_token}&name={quote(request.name, safe='')}"
        )
        email_sent = self.send_email(
            subscriber_welcome_email(request.name, link, author_name), request.email
        )
        return {
            "success": True,
            "message": "Suscriptor agregado exitosamente",
            "subscriber": subscriber,
            "emailSent": email_sent,
        }

    def author_email(self, author_user_id: str):
        try:
            author = self.supabase.get_user(author_user_id)
        except (UpstreamError, requests.RequestException) as e:
            self.log.warning(f"Could not fetch email of author {author_user_id}: {e}")
            return None
        return (author or {}).get("email")


@dataclass
class GiftManagementRemoveSubscriberHandler(ManagementTokenHandler[SubscriberActionRequest]):
    @classmethod
    def route_name(cls) -> str:
        return "gift-management-remove-subscriber"

    def handle(self, request: SubscriberActionRequest) -> Dict[str, Any]:
        author_user_id = self.management_token(request.token).get("author_user_id")
        if self.author_subscriber(author_user_id, request.subscriber_id, columns="id") is None:
            raise NotFoundError("Suscriptor no encontrado o no pertenece a este autor")

        self.supabase.delete(
            SUBSCRIBERS_TABLE,
            {"id": eq(request.subscriber_id)},
            error_message="Error al eliminar suscriptor",
        )
        return {"success": True, "message": "Suscriptor eliminado exitosamente"}


@dataclass
class GiftManagementResendSubscriberLinkHandler(ManagementTokenHandler[SubscriberActionRequest]):
    """Email a subscriber their stored access link again."""

    email_config_message = "Email service not configured"

    @classmethod
    def route_name(cls) -> str:
        return "gift-management-resend-subscriber-link"

    def handle(self, request: SubscriberActionRequest) -> Dict[str, Any]:
        author_user_id = self.management_token(request.token).get("author_user_id")
        subscriber = self.author_subscriber(author_user_id, request.subscriber_id)
        if subscriber is None:
            raise NotFoundError("Suscriptor no encontrado")

        magic_link = subscriber.get("magic_link")
        if not magic_link:
            raise UpstreamError("Magic link no encontrado para este suscriptor")

        link = f"{self.app_url}/subscriber/{author_user_id}?token={magic_link}"
        self.deliver_email(
            subscriber_link_resend_email(subscriber.get("name") or "", link),
            subscriber.get("email"),
            error_message="Error al enviar el email",
        )
        return {"success": True, "message": "Enlace reenviado exitosamente"}


gift_management_add_subscriber_handler = GiftManagementAddSubscriberHandler.get_handler()
gift_management_remove_subscriber_handler = GiftManagementRemoveSubscriberHandler.get_handler()
gift_management_resend_subscriber_link_handler = (
    GiftManagementResendSubscriberLinkHandler.get_handler()
)
