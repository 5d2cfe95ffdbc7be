from dataclasses import dataclass
from typing import Any, Dict, Optional

from narra_lambda.clients.base import parse_json
from narra_lambda.common.api.errors import (
    ForbiddenError,
    NotFoundError,
    RequestValidationError,
    UpstreamError,
)
from narra_lambda.common.utils import utc_now_iso
from narra_lambda.handlers.base import NarraApiHandler
from narra_lambda.handlers.feedback.model import StoryAccessRequest

REGISTER_ACCESS_RPC = "register_subscriber_access"
USER_AGENT_MAX_LENGTH = 512
ACCESS_FAILED_MESSAGE = "Access validation failed"


@dataclass
class StoryAccessHandler(NarraApiHandler[StoryAccessRequest]):
    """Validate a subscriber link and record the access.

    The `register_subscriber_access` procedure checks the token and logs the event. Its
    `status` decides the answer: `ok` grants access, `not_found` is a 404, `forbidden`
    a 403 and anything else a 400.
    """

    body_required = True
    supabase_config_message = "Supabase credentials not configured"
    supabase_allow_anon = True

    @classmethod
    def route_name(cls) -> str:
        return "story-access"

    def handle(self, request: StoryAccessRequest) -> Dict[str, Any]:
        user_agent = self.header("user-agent")
        response = self.supabase.call_rpc(
            REGISTER_ACCESS_RPC,
            {
                "author_id": request.author_id,
                "subscriber_id": request.subscriber_id,
                "token": request.token,
                "story_id": request.story_id,
                "source": request.source,
                "event_type": request.event_type,
                "request_ip": self.client_ip(),
                "user_agent": user_agent[:USER_AGENT_MAX_LENGTH] if user_agent else None,
            },
        )
        payload = parse_json(response)
        if not isinstance(payload, dict):
            self.log.error(f"Unexpected {REGISTER_ACCESS_RPC} response ({response.status_code})")
            raise UpstreamError(
                ACCESS_FAILED_MESSAGE,
                detail=f"Unexpected response from Supabase RPC ({response.status_code})",
            )

        status = payload.get("status")
        status = status.lower() if isinstance(status, str) else None
        if status == "ok":
            return self.granted(request, payload.get("data") or {})
        if status == "not_found":
            raise NotFoundError("Subscriber not found")
        if status == "forbidden":
            message = payload.get("message")
            raise ForbiddenError(
                message if isinstance(message, str) else "Invalid or expired token"
            )
        raise RequestValidationError(ACCESS_FAILED_MESSAGE, detail=payload)

    def granted(self, request: StoryAccessRequest, data: Dict[str, Any]) -> Dict[str, Any]:
        subscriber = data.get("subscriber") or {}
        source = data.get("source")
        source = source.strip() if isinstance(source, str) and source.strip() else None
        subscriber_status = subscriber.get("status")
        body: Dict[str, Any] = {
            "grantedAt": data.get("grantedAt") or utc_now_iso(),
            "token": data.get("token") or request.token,
            "source": source or request.source or "link",
            "subscriber": subscriber,
            "unsubscribed": isinstance(subscriber_status, str)
            and subscriber_status.lower() == "unsubscribed",
        }
        public_config = self.public_supabase()
        if public_config:
            body["supabase"] = public_config
        self.log.info(
            f"Access granted to subscriber {request.subscriber_id} of author {request.author_id}",
            extra={"story_id": request.story_id, "event_type": request.event_type},
        )
        return body

    def public_supabase(self) -> Optional[Dict[str, str]]:
        """Public project settings the blog needs to query Supabase directly."""
        settings = self.supabase_settings
        if not settings.url or not settings.anon_key:
            return None
        return {"url": settings.url, "anonKey": settings.anon_key}


story_access_handler = StoryAccessHandler.get_handler()
