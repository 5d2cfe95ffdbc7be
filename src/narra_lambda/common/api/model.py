"""Request models for API handlers.

Every request model extends `ApiRequest`. Decoding an HTTP request goes through
the same steps for every handler:

1. The JSON body (a malformed body counts as absent) is merged over the query
   string parameters.
2. Keys are normalized: a field is read from its snake_case name, its camelCase
   spelling or any alias declared in `field_aliases`. `None` values are dropped.
3. `SchemaModel.from_dict` coerces types; marshmallow errors become a
   `RequestValidationError`.
4. The model's `validate_request()` hook applies the semantic rules of the endpoint.
"""

__all__ = [
    "ApiRequest",
    "EmptyRequest",
    "camelize",
    "is_valid_email",
    "normalize_email",
]

import re
from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, List, Mapping, Optional

import marshmallow as mm
from aibs_informatics_core.models.base import SchemaModel

from narra_lambda.common.api.errors import RequestValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def camelize(name: str) -> str:
    head, *tail = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in tail)


def normalize_email(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_PATTERN.match(value or "") is not None


@dataclass
class ApiRequest(SchemaModel):
    """Base class for typed API requests.

    Subclasses declare their fields with `custom_field` and every field must have
    a default; required-ness is enforced in `validate_request()` so that missing values
    produce the endpoint's own error message.
    """

    field_aliases: ClassVar[Dict[str, List[str]]] = {}
    invalid_message: ClassVar[str] = "Invalid request body"

    @classmethod
    def normalize_payload(cls, payload: Mapping[str, Any]) -> Dict[str, Any]:
        normalized: Dict[str, Any] = {}
        for model_field in fields(cls):
            if not model_field.init:
                continue
            name = model_field.name
            candidates = [name, camelize(name), *cls.field_aliases.get(name, [])]
            for key in candidates:
                if key in payload and payload[key] is not None:
                    normalized[name] = payload[key]
                    break
        return normalized

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]):
        """Decode a raw payload into a validated request.

        Args:
            payload (Optional[Mapping[str, Any]]): Merged query parameters and JSON body.

        Raises:
            RequestValidationError: If the payload does not match the model.

        Returns:
            The typed request.
        """
        try:
            request = cls.from_dict(cls.normalize_payload(payload or {}))
        except mm.ValidationError as e:
            raise RequestValidationError(cls.invalid_message, details=e.messages) from e
        request.validate_request()
        return request

    def validate_request(self) -> None:
        """Apply semantic validation. Raise `RequestValidationError` on failure."""


@dataclass
class EmptyRequest(ApiRequest):
    pass
