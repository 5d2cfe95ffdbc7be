from dataclasses import dataclass

from narra_lambda.clients.base import parse_json
from narra_lambda.clients.resend import ResendClient
from narra_lambda.common.api.response import ApiResponse
from narra_lambda.config import ResendSettings
from narra_lambda.handlers.accounts.model import SendEmailRequest
from narra_lambda.handlers.base import NarraApiHandler


@dataclass
class SendEmailHandler(NarraApiHandler[SendEmailRequest]):
    """Send an arbitrary email through Resend.

    The sender and reply-to default to the configured ones. The Resend status is passed
    through with its JSON payload (`{raw}` when it is not JSON); errors are answered as
    `{error, detail}`.
    """

    body_required = True
    supabase_config_message = None

    @classmethod
    def route_name(cls) -> str:
        return "email"

    def validate_config(self) -> None:
        super().validate_config()
        self.resend_settings = ResendSettings.from_env(None)

    def handle(self, request: SendEmailRequest) -> ApiResponse:
        payload = request.resend_payload(
            self.resend_settings.from_email, self.resend_settings.reply_to
        )
        self.log.info(
            f"Sending email to {len(payload['to'])} recipient(s)",
            extra={
                "subject": payload["subject"],
                "cc_count": len(payload.get("cc", [])),
                "bcc_count": len(payload.get("bcc", [])),
                "tag_count": len(payload.get("tags", [])),
                "html_length": len(payload["html"]),
            },
        )
        response = ResendClient.from_settings(self.resend_settings).send_email(payload)
        parsed = parse_json(response, {"raw": response.text} if response.text else None)

        if response.ok:
            self.log.info(f"Email accepted by Resend with {response.status_code}")
            return ApiResponse.json(parsed or {"ok": True}, response.status_code)

        self.log.error(f"Resend returned {response.status_code}: {parsed}")
        error = (parsed or {}).get("error") if isinstance(parsed, dict) else None
        if isinstance(error, dict):
            error = error.get("message")
        return ApiResponse.json(
            {"error": error if isinstance(error, str) else "Resend API error", "detail": parsed},
            response.status_code,
        )


email_handler = SendEmailHandler.get_handler()
