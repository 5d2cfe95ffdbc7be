"""Edge routing between the Flutter app, the blog SPA and everything else.

Deployed as a Lambda@Edge origin-request function. Navigation requests under `/app`
are served the app shell and blog routes the SPA shell; static files, API routes and
the landing pages pass through untouched.
"""

__all__ = [
    "APP_SHELL",
    "BLOG_SHELL",
    "EdgeRequest",
    "EdgeRoutingHandler",
    "resolve_rewrite",
]

from dataclasses import dataclass
from typing import Any, Dict, Optional

from aibs_informatics_core.models.base import (
    RawField,
    SchemaModel,
    StringField,
    custom_field,
)

from narra_lambda.common.handler import LambdaEvent, LambdaHandler

APP_SHELL = "/app/index.html"
BLOG_SHELL = "/index.html"


def _is_navigation(path: str) -> bool:
    return "." not in path or path.endswith(".html")


def resolve_rewrite(path: str) -> Optional[str]:
    """Document to serve instead of `path`, or None to pass the request through.

    Example:
        >>> resolve_rewrite("/app/settings")
        '/app/index.html'
        >>> resolve_rewrite("/app/main.dart.js") is None
        True
    """
    if path in ("/app", "/app/") or path.startswith("/app/"):
        if _is_navigation(path):
            return APP_SHELL
    if path.startswith("/blog/") and _is_navigation(path):
        return BLOG_SHELL
    return None


@dataclass
class EdgeRequest(SchemaModel):
    """CloudFront request of an origin-request event.

    `request` keeps the full CloudFront request so everything but the URI is
    returned unchanged.
    """

    uri: str = custom_field(mm_field=StringField())
    request: Dict[str, Any] = custom_field(mm_field=RawField(), default_factory=dict)


@dataclass
class EdgeRoutingHandler(LambdaHandler[EdgeRequest, Dict[str, Any]]):
    @classmethod
    def deserialize_request(cls, event: LambdaEvent) -> EdgeRequest:
        request = event["Records"][0]["cf"]["request"]  # type: ignore[index]
        return EdgeRequest(uri=request.get("uri") or "/", request=request)

    def handle(self, request: EdgeRequest) -> Dict[str, Any]:
        rewrite = resolve_rewrite(request.uri)
        if rewrite is None:
            return request.request
        self.log.debug(f"Rewriting {request.uri} to {rewrite}")
        return {**request.request, "uri": rewrite}


handler = EdgeRoutingHandler.get_handler()
