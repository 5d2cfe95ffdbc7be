from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Dict, Optional

from narra_lambda.common.api.errors import RequestValidationError
from narra_lambda.common.api.response import ApiResponse
from narra_lambda.handlers.ai.base import OpenAIApiHandler
from narra_lambda.handlers.ai.model import RealtimeSessionRequest

SDP_REJECTED_MESSAGE = (
    "SDP exchange must be performed directly contra OpenAI usando el client_secret efímero "
    "(consulta la documentación Realtime)."
)


def client_secret_value(raw: Any) -> Optional[str]:
    """The ephemeral secret, given as a string or as `{"value": ...}`."""
    if isinstance(raw, str):
        return raw or None
    if isinstance(raw, dict) and isinstance(raw.get("value"), str):
        return raw["value"] or None
    return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


@dataclass
class RealtimeSessionHandler(OpenAIApiHandler[RealtimeSessionRequest]):
    """Create an ephemeral OpenAI realtime transcription session for the browser.

    The browser performs the SDP exchange with OpenAI itself using the returned client
    secret, so bodies carrying `sdp` are rejected.
    """

    @classmethod
    def route_name(cls) -> str:
        return "realtime-session"

    def request_payload(self) -> Dict[str, Any]:
        if "application/json" not in (self.header("content-type") or ""):
            return {}
        body = self.json_body()
        if not isinstance(body, dict):
            return {}
        if "sdp" in body:
            raise RequestValidationError(SDP_REJECTED_MESSAGE)
        return body

    def handle(self, request: RealtimeSessionRequest) -> ApiResponse:
        payload = request.session_payload()
        response = self.openai.create_realtime_session(payload)
        if not response.ok:
            self.log.error(f"Realtime session failed with {response.status_code}")
            return ApiResponse.json(
                {
                    "error": "Realtime session failed",
                    "status": response.status_code,
                    "details": response.text,
                },
                response.status_code,
            )

        try:
            session = response.json()
        except ValueError:
            return ApiResponse.json(
                {"error": "Realtime session malformed payload", "details": response.text},
                HTTPStatus.BAD_GATEWAY,
            )
        if not isinstance(session, dict):
            session = {}

        client_secret = client_secret_value(session.get("client_secret"))
        if not client_secret:
            return ApiResponse.json(
                {"error": "Realtime session missing client_secret", "details": session},
                HTTPStatus.BAD_GATEWAY,
            )

        session_id = session.get("id")
        if session_id is None:
            session_id = session.get("session_id")
        expires_at = next(
            (
                session[key]
                for key in ("expires_at", "expiration_time", "expire_time")
                if session.get(key) is not None
            ),
            None,
        )
        model = session.get("model")
        self.log.info(f"Realtime session {session_id} created")
        return ApiResponse.json(
            {
                "sessionId": _optional_str(session_id),
                "expiresAt": _optional_str(expires_at),
                "clientSecret": client_secret,
                "iceServers": session.get("ice_servers")
                if isinstance(session.get("ice_servers"), list)
                else [],
                "model": model if isinstance(model, str) and model else payload["model"],
            }
        )


realtime_session_handler = RealtimeSessionHandler.get_handler()
