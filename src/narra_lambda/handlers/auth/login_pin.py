from dataclasses import dataclass
from typing import Any, Dict

from narra_lambda.common.api.errors import NotFoundError, UpstreamError
from narra_lambda.handlers.auth.model import UNREGISTERED_EMAIL_MESSAGE, AuthorEmailRequest
from narra_lambda.handlers.base import NarraApiHandler
from narra_lambda.notifications.templates import login_pin_email


@dataclass
class AuthorLoginPinHandler(NarraApiHandler[AuthorEmailRequest]):
    """Email a 6 digit login PIN to a registered author.

    The PIN is the `email_otp` of a Supabase magic link generated for the author.
    Unknown addresses are rejected before any link is generated.
    """

    body_required = True
    email_config_message = "Email service not configured"

    @classmethod
    def route_name(cls) -> str:
        return "author-login-pin"

    def handle(self, request: AuthorEmailRequest) -> Dict[str, Any]:
        self.log.info(f"Generating login PIN for {request.email}")
        if self.supabase.find_user_by_email(request.email) is None:
            self.log.info(f"No account registered for {request.email}")
            raise NotFoundError(UNREGISTERED_EMAIL_MESSAGE)

        link_data = self.supabase.generate_link(
            request.email,
            redirect_to=f"{self.app_url}/app",
            error_message="Failed to generate OTP",
        )
        email_otp = (link_data.get("properties") or {}).get("email_otp") or link_data.get(
            "email_otp"
        )
        if not email_otp or not isinstance(email_otp, str):
            self.log.error("generate_link returned no email_otp")
            raise UpstreamError("No se pudo generar el PIN de acceso")

        self.deliver_email(login_pin_email(request.email, email_otp), request.email)
        return {
            "success": True,
            "message": "Te enviamos un PIN de 6 dígitos para iniciar sesión",
        }


author_login_pin_handler = AuthorLoginPinHandler.get_handler()
