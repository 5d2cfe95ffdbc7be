__all__ = [
    "UNREGISTERED_EMAIL_MESSAGE",
    "AuthorEmailRequest",
    "MagicLinkValidationRequest",
]

from dataclasses import dataclass

from aibs_informatics_core.models.base import StringField, custom_field

from narra_lambda.common.api.errors import RequestValidationError
from narra_lambda.common.api.model import ApiRequest, normalize_email

UNREGISTERED_EMAIL_MESSAGE = (
    "Este correo no está registrado. Por favor, contacta al administrador para crear tu cuenta."
)


@dataclass
class AuthorEmailRequest(ApiRequest):
    """Request carrying the email of an author asking for access."""

    email: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.email = normalize_email(self.email)
        if not self.email or "@" not in self.email:
            raise RequestValidationError("Email válido es requerido")


@dataclass
class MagicLinkValidationRequest(ApiRequest):
    token: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.token = self.token.strip()
        if not self.token:
            raise RequestValidationError("Token is required")
