from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict

from narra_lambda.common.api.errors import NotFoundError, RequestValidationError, UpstreamError
from narra_lambda.common.utils import generate_token, utc_now_iso
from narra_lambda.handlers.auth.model import (
    UNREGISTERED_EMAIL_MESSAGE,
    AuthorEmailRequest,
    MagicLinkValidationRequest,
)
from narra_lambda.handlers.base import NarraApiHandler, fallback_author_name
from narra_lambda.notifications.templates import author_magic_link_email

MAGIC_LINKS_TABLE = "author_magic_links"
MAGIC_LINK_TTL_MINUTES = 15


@dataclass
class AuthorMagicLinkHandler(NarraApiHandler[AuthorEmailRequest]):
    """Email a single use login link to a registered author.

    A random token is stored in `author_magic_links` with a 15 minute expiry and
    the link `<APP_URL>/app/auth/magic?token=<token>` is sent to the author.
    """

    body_required = True
    email_config_message = "Email service not configured"

    @classmethod
    def route_name(cls) -> str:
        return "author-magic-link"

    def handle(self, request: AuthorEmailRequest) -> Dict[str, Any]:
        user = self.supabase.find_user_by_email(request.email)
        if user is None:
            self.log.info(f"No account registered for {request.email}")
            raise NotFoundError(UNREGISTERED_EMAIL_MESSAGE)

        token = generate_token()
        self.supabase.insert(
            MAGIC_LINKS_TABLE,
            {
                "email": request.email,
                "token": token,
                "user_id": user.get("id"),
                "created_at": utc_now_iso(),
                "expires_at": utc_now_iso(timedelta(minutes=MAGIC_LINK_TTL_MINUTES)),
            },
            error_message="Failed to generate magic link",
        )

        magic_link = f"{self.app_url}/app/auth/magic?token={token}"
        self.deliver_email(author_magic_link_email(request.email, magic_link), request.email)
        self.log.info(f"Magic link sent to {request.email}")
        return {
            "success": True,
            "message": "Te hemos enviado un correo con un enlace para iniciar sesión",
            "isNewUser": False,
        }


@dataclass
class AuthorMagicValidateHandler(NarraApiHandler[MagicLinkValidationRequest]):
    """Redeem a magic link token and return a Supabase session link.

    The `validate_author_magic_link` RPC consumes the token and tells whether the
    author logs in or must be registered first.
    """

    body_required = True

    @classmethod
    def route_name(cls) -> str:
        return "author-magic-validate"

    def handle(self, request: MagicLinkValidationRequest) -> Dict[str, Any]:
        result = self.supabase.rpc(
            "validate_author_magic_link",
            {
                "p_token": request.token,
                "p_ip_address": self.client_ip(),
                "p_user_agent": self.header("user-agent"),
            },
            error_message="Failed to validate magic link",
        )
        if not isinstance(result, dict):
            raise UpstreamError("Unexpected validation result")

        if result.get("status") == "error":
            raise RequestValidationError(
                result.get("message") or "Magic link inválido o expirado", expired=True
            )

        action = result.get("action")
        if action == "register" and result.get("email"):
            email = result["email"]
            self.log.info(f"Registering new author {email}")
            new_user = self.supabase.create_user(
                email,
                email_confirm=True,
                user_metadata={"name": fallback_author_name(email, "")},
                error_message="Failed to create user account",
            )
            user = {
                "id": new_user.get("id"),
                "email": new_user.get("email"),
                "name": (new_user.get("user_metadata") or {}).get("name")
                or fallback_author_name(new_user.get("email"), ""),
            }
            return self.session_response("register", email, user)

        if action == "login" and isinstance(result.get("user"), dict):
            user = result["user"]
            return self.session_response("login", user.get("email"), user)

        self.log.error(f"Unexpected validation result: {result}")
        raise UpstreamError("Unexpected validation result")

    def session_response(self, action: str, email: str, user: Dict[str, Any]) -> Dict[str, Any]:
        session = self.supabase.generate_link(email, error_message="Failed to generate session")
        return {"success": True, "action": action, "user": user, "session": session}


author_magic_link_handler = AuthorMagicLinkHandler.get_handler()
author_magic_validate_handler = AuthorMagicValidateHandler.get_handler()
