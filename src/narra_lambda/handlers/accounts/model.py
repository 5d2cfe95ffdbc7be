__all__ = [
    "ContactRequest",
    "DeleteAccountRequest",
    "EmailChangeRequest",
    "EmailChangeTokenRequest",
    "GiftLaterActivateRequest",
    "GiftLaterPurchaseRequest",
    "GiftLaterTokenRequest",
    "SendEmailRequest",
]

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from aibs_informatics_core.models.base import (
    RawField,
    StringField,
    custom_field,
)

from narra_lambda.common.api.errors import RequestValidationError
from narra_lambda.common.api.model import ApiRequest, is_valid_email, normalize_email

CONTACT_NAME_MAX_LENGTH = 200
CONTACT_EMAIL_MAX_LENGTH = 200
CONTACT_MESSAGE_MAX_LENGTH = 5000
CONTACT_MESSAGE_MIN_LENGTH = 10


def _clip(value: Any, max_length: int) -> str:
    return value.strip()[:max_length] if isinstance(value, str) else ""


# ----------------------------------------------------------
# Gift later
# ----------------------------------------------------------


@dataclass
class GiftLaterPurchaseRequest(ApiRequest):
    buyer_email: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.buyer_email = normalize_email(self.buyer_email)
        if not self.buyer_email or "@" not in self.buyer_email:
            raise RequestValidationError("Email válido del comprador es requerido")


@dataclass
class GiftLaterTokenRequest(ApiRequest):
    """Activation token lookup. Every error of this flow carries `valid: false`."""

    token: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.token = self.token.strip()
        if not self.token:
            raise RequestValidationError("Token no proporcionado", valid=False)


@dataclass
class GiftLaterActivateRequest(ApiRequest):
    token: str = custom_field(mm_field=StringField(), default="")
    author_email: str = custom_field(mm_field=StringField(), default="")
    author_name: str = custom_field(mm_field=StringField(), default="")
    buyer_name: Optional[str] = custom_field(mm_field=StringField(allow_none=True), default=None)
    gift_message: Optional[str] = custom_field(
        mm_field=StringField(allow_none=True), default=None
    )

    def validate_request(self) -> None:
        self.token = self.token.strip()
        self.author_email = normalize_email(self.author_email)
        self.author_name = self.author_name.strip()
        self.buyer_name = (self.buyer_name or "").strip() or None
        self.gift_message = (self.gift_message or "").strip() or None
        if not self.token:
            raise RequestValidationError("Token es requerido")
        if not self.author_email or "@" not in self.author_email:
            raise RequestValidationError("Email válido del destinatario es requerido")
        if not self.author_name:
            raise RequestValidationError("Nombre del destinatario es requerido")


# ----------------------------------------------------------
# Email change
# ----------------------------------------------------------


@dataclass
class EmailChangeRequest(ApiRequest):
    new_email: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.new_email = normalize_email(self.new_email)
        if not self.new_email or "@" not in self.new_email:
            raise RequestValidationError("Email válido es requerido")


@dataclass
class EmailChangeTokenRequest(ApiRequest):
    token: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.token = self.token.strip()
        if not self.token:
            raise RequestValidationError("Token es requerido")


# ----------------------------------------------------------
# Account data
# ----------------------------------------------------------


@dataclass
class DeleteAccountRequest(ApiRequest):
    """Confirmation email typed by the user. Compared once the caller is authenticated."""

    email: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.email = normalize_email(self.email)


# ----------------------------------------------------------
# Contact and generic email
# ----------------------------------------------------------


@dataclass
class ContactRequest(ApiRequest):
    """Contact form submission.

    Errors are reported as short codes (`name_required`, `invalid_email`, ...) that the
    contact page translates.
    """

    invalid_message = "invalid_body"

    name: str = custom_field(mm_field=RawField(), default="")
    email: str = custom_field(mm_field=RawField(), default="")
    message: str = custom_field(mm_field=RawField(), default="")
    is_current_client: bool = custom_field(mm_field=RawField(), default=False)

    def validate_request(self) -> None:
        self.name = _clip(self.name, CONTACT_NAME_MAX_LENGTH)
        self.email = _clip(self.email, CONTACT_EMAIL_MAX_LENGTH)
        self.message = _clip(self.message, CONTACT_MESSAGE_MAX_LENGTH)
        self.is_current_client = bool(self.is_current_client)
        if not self.name:
            raise RequestValidationError("name_required")
        if not self.email:
            raise RequestValidationError("email_required")
        if not is_valid_email(self.email):
            raise RequestValidationError("invalid_email")
        if len(self.message) < CONTACT_MESSAGE_MIN_LENGTH:
            raise RequestValidationError("message_too_short")


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def normalize_tags(value: Any) -> List[Dict[str, str]]:
    """Normalize Resend tags.

    Accepts `"name:value"` strings (a bare `"name"` gets the value `true`), `{name, value}`
    objects, plain mappings of names to values, or a list mixing them.
    """
    tags: List[Dict[str, str]] = []

    def push(name: str, raw_value: Any = None) -> None:
        name = name.strip()
        if not name:
            return
        if isinstance(raw_value, bool):
            tag_value = str(raw_value).lower()
        elif isinstance(raw_value, (int, float)):
            tag_value = str(raw_value)
        elif isinstance(raw_value, str):
            tag_value = raw_value.strip()
        else:
            tag_value = ""
        tags.append({"name": name, "value": tag_value or "true"})

    def parse(entry: Any) -> None:
        if not entry:
            return
        if isinstance(entry, str):
            name, separator, tag_value = entry.strip().partition(":")
            if separator and name:
                push(name, tag_value)
            else:
                push(entry)
        elif isinstance(entry, dict):
            if isinstance(entry.get("name"), str) and entry["name"]:
                push(entry["name"], entry.get("value"))
            else:
                for key, tag_value in entry.items():
                    push(str(key), tag_value)

    for entry in value if isinstance(value, list) else [value]:
        parse(entry)
    return tags


@dataclass
class SendEmailRequest(ApiRequest):
    to: Union[str, List[str]] = custom_field(mm_field=RawField(), default="")
    subject: str = custom_field(mm_field=RawField(), default="")
    html: str = custom_field(mm_field=RawField(), default="")
    text: Optional[str] = custom_field(mm_field=RawField(allow_none=True), default=None)
    from_: Optional[str] = custom_field(mm_field=RawField(allow_none=True), default=None)
    reply_to: Optional[str] = custom_field(mm_field=RawField(allow_none=True), default=None)
    cc: Optional[List[str]] = custom_field(mm_field=RawField(allow_none=True), default=None)
    bcc: Optional[List[str]] = custom_field(mm_field=RawField(allow_none=True), default=None)
    tags: Any = custom_field(mm_field=RawField(allow_none=True), default=None)
    headers: Optional[Dict[str, Any]] = custom_field(
        mm_field=RawField(allow_none=True), default=None
    )

    field_aliases = {"from_": ["from"]}

    def validate_request(self) -> None:
        self.to = _string_list(self.to)
        if not self.to:
            raise RequestValidationError("At least one recipient is required")
        self.subject = self.subject.strip() if isinstance(self.subject, str) else ""
        if not self.subject:
            raise RequestValidationError("Email subject is required")
        if not isinstance(self.html, str) or not self.html:
            raise RequestValidationError("Email html content is required")

    def resend_payload(self, default_from: str, default_reply_to: Optional[str]) -> Dict[str, Any]:
        """Build the Resend body, falling back to the configured sender and reply-to."""
        payload: Dict[str, Any] = {
            "from": _clip(self.from_, 320) or default_from,
            "to": self.to,
            "subject": self.subject,
            "html": self.html,
        }
        if isinstance(self.text, str) and self.text.strip():
            payload["text"] = self.text
        reply_to = _clip(self.reply_to, 320) or default_reply_to
        if reply_to:
            payload["reply_to"] = reply_to
        for key, value in (("cc", self.cc), ("bcc", self.bcc)):
            recipients = _string_list(value) if isinstance(value, list) else []
            if recipients:
                payload[key] = recipients
        tags = normalize_tags(self.tags)
        if tags:
            payload["tags"] = tags
        if isinstance(self.headers, dict):
            headers = {
                key: value for key, value in self.headers.items() if isinstance(value, str)
            }
            if headers:
                payload["headers"] = headers
        return payload
