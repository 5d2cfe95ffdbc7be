"""HTTP response model shared by every API handler."""

__all__ = [
    "ALLOW_HEADERS",
    "CORS_MAX_AGE",
    "ApiResponse",
    "cors_headers",
]

import base64
import json
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Dict, Iterable, Optional, Union

from aws_lambda_powertools.event_handler import content_types
from aws_lambda_powertools.event_handler.api_gateway import Response

ALLOW_HEADERS = "Content-Type, Authorization"
CORS_MAX_AGE = "86400"


def cors_headers(methods: Iterable[str]) -> Dict[str, str]:
    """Build the CORS header set advertised by an endpoint.

    Args:
        methods (Iterable[str]): HTTP methods served by the endpoint. OPTIONS is always added.

    Returns:
        The CORS headers.
    """
    allowed = [m.upper() for m in methods if m.upper() != "OPTIONS"] + ["OPTIONS"]
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Access-Control-Allow-Methods": ", ".join(allowed),
        "Access-Control-Max-Age": CORS_MAX_AGE,
    }


@dataclass
class ApiResponse:
    """Status, headers and body of an API response.

    `body` is JSON-encoded for JSON content types, sent as-is for strings and
    base64 encoded for bytes.
    """

    body: Union[Dict[str, Any], list, str, bytes, None] = None
    status_code: int = HTTPStatus.OK
    content_type: Optional[str] = content_types.APPLICATION_JSON
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def json(cls, body: Any, status_code: int = HTTPStatus.OK) -> "ApiResponse":
        return cls(body=body, status_code=status_code)

    @classmethod
    def no_content(cls) -> "ApiResponse":
        return cls(body=None, status_code=HTTPStatus.NO_CONTENT, content_type=None)

    @classmethod
    def attachment(cls, content: Union[str, bytes], filename: str, content_type: str):
        return cls(
            body=content,
            content_type=content_type,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @property
    def is_base64_encoded(self) -> bool:
        return isinstance(self.body, bytes)

    def encoded_body(self) -> Optional[str]:
        if self.body is None:
            return None
        if isinstance(self.body, bytes):
            return base64.b64encode(self.body).decode("ascii")
        if isinstance(self.body, str):
            return self.body
        return json.dumps(self.body, ensure_ascii=False)

    def all_headers(self, cors: Dict[str, str]) -> Dict[str, str]:
        headers = dict(cors)
        if self.content_type:
            headers["Content-Type"] = self.content_type
        headers.update(self.headers)
        return headers

    def to_proxy_response(self, cors: Dict[str, str]) -> Dict[str, Any]:
        """Render as an API Gateway (REST) Lambda proxy integration response."""
        return {
            "statusCode": int(self.status_code),
            "headers": self.all_headers(cors),
            "body": self.encoded_body() or "",
            "isBase64Encoded": self.is_base64_encoded,
        }

    def to_resolver_response(self, cors: Dict[str, str]) -> Response:
        """Render as a powertools `Response` for routes served by an APIGatewayRestResolver."""
        headers = self.all_headers(cors)
        headers.pop("Content-Type", None)
        body: Union[str, bytes, None] = self.body if isinstance(self.body, bytes) else None
        if body is None:
            body = self.encoded_body()
        return Response(
            status_code=int(self.status_code),
            content_type=self.content_type,
            body=body,
            headers=headers,
        )
