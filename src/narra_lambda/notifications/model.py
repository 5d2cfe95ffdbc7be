"""What is sent, to whom, and how the delivery went."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, TypeVar, Union

import marshmallow as mm
from aibs_informatics_core.models.base import (
    BooleanField,
    ListField,
    RawField,
    SchemaModel,
    StringField,
    custom_field,
)
from aibs_informatics_core.utils.json import JSON

NOTIFIER_TARGET = TypeVar("NOTIFIER_TARGET", bound="NotifierTarget")

# Resend tag carrying the email kind, e.g. `{"name": "type", "value": "author-login-pin"}`
TAG_NAME = "type"

RECIPIENT_KEYS = ("recipients", "recipient", "to")


@dataclass
class EmailContent(SchemaModel):
    """Subject, HTML body, optional plain text body and optional kind tag of an email."""

    subject: str = custom_field(mm_field=StringField())
    html: str = custom_field(mm_field=StringField())
    text: Optional[str] = custom_field(mm_field=StringField(allow_none=True), default=None)
    tag: Optional[str] = custom_field(mm_field=StringField(allow_none=True), default=None)


@dataclass
class NotifierTarget(SchemaModel):
    pass


@dataclass
class EmailTarget(NotifierTarget):
    """Recipient addresses.

    The dict form accepts `recipients`, `recipient` or `to`, each a single address or a
    list of addresses.
    """

    recipients: List[str] = custom_field(mm_field=ListField(StringField()))

    @classmethod
    @mm.pre_load
    def _collect_recipients(cls, data: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        recipients: List[str] = []
        for key in RECIPIENT_KEYS:
            value = data.pop(key, None)
            if value is None:
                continue
            if isinstance(value, str):
                recipients.append(value)
            elif isinstance(value, list):
                recipients.extend(value)
            else:
                raise mm.ValidationError(f"'{key}' must be an address or a list of addresses")
        data["recipients"] = recipients
        return data

    @classmethod
    def to(cls, *addresses: str) -> "EmailTarget":
        """Target the given addresses, skipping empty ones."""
        return cls(recipients=[address for address in addresses if address])


@dataclass
class NotifierResult(SchemaModel):
    """Outcome of one delivery.

    `response` holds the provider's parsed JSON answer, its raw text, or the error
    message when the provider could not be reached.
    """

    target: Union[dict, NotifierTarget] = custom_field(mm_field=RawField())
    success: bool = custom_field(mm_field=BooleanField())
    response: JSON = custom_field(mm_field=RawField())
