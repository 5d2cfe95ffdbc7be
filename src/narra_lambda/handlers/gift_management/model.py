__all__ = [
    "AddSubscriberRequest",
    "ChangeAuthorEmailRequest",
    "ManagementTokenRequest",
    "SubscriberActionRequest",
]

from dataclasses import dataclass

from aibs_informatics_core.models.base import StringField, custom_field

from narra_lambda.common.api.errors import RequestValidationError
from narra_lambda.common.api.model import ApiRequest, normalize_email


@dataclass
class ManagementTokenRequest(ApiRequest):
    """Request authorized by a gift management token.

    Attributes:
        token: The opaque management token handed to the gift buyer.
    """

    token: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.token = self.token.strip()
        if not self.token:
            raise RequestValidationError("Token es requerido")


@dataclass
class AddSubscriberRequest(ManagementTokenRequest):
    name: str = custom_field(mm_field=StringField(), default="")
    email: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.token = self.token.strip()
        self.name = self.name.strip()
        self.email = normalize_email(self.email)
        if not self.token or not self.name or not self.email:
            raise RequestValidationError("Token, nombre y email son requeridos")
        if "@" not in self.email:
            raise RequestValidationError("Email válido es requerido")


@dataclass
class SubscriberActionRequest(ManagementTokenRequest):
    subscriber_id: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.token = self.token.strip()
        self.subscriber_id = self.subscriber_id.strip()
        if not self.token or not self.subscriber_id:
            raise RequestValidationError("Token y subscriberId son requeridos")


@dataclass
class ChangeAuthorEmailRequest(ManagementTokenRequest):
    new_email: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.token = self.token.strip()
        self.new_email = normalize_email(self.new_email)
        if not self.token or not self.new_email:
            raise RequestValidationError("Token y email son requeridos")
        if "@" not in self.new_email:
            raise RequestValidationError("Email válido es requerido")
