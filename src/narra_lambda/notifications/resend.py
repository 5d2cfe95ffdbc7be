"""Email delivery through Resend."""

__all__ = [
    "ResendNotifier",
]

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from aibs_informatics_core.utils.logging import get_logger

from narra_lambda.clients.base import parse_json
from narra_lambda.clients.resend import ResendClient
from narra_lambda.common.api.errors import UpstreamError
from narra_lambda.config import ResendSettings
from narra_lambda.notifications.base import Notifier
from narra_lambda.notifications.model import TAG_NAME, EmailContent, EmailTarget, NotifierResult

logger = get_logger(__name__)


@dataclass
class ResendNotifier(Notifier[EmailTarget]):
    """Notifier sending `EmailContent` through the Resend API.

    Example:
        ```python
        notifier = ResendNotifier.from_env()
        result = notifier.notify(
            content=EmailContent(subject="Hola", html="<p>Hola</p>", tag="greeting"),
            target=EmailTarget.to("autor@example.com"),
        )
        ```
    """

    client: ResendClient
    from_email: str
    reply_to: Optional[str] = None

    @classmethod
    def from_env(cls, message: str = "Email service not configured") -> "ResendNotifier":
        settings = ResendSettings.from_env(message)
        return cls(
            client=ResendClient.from_settings(settings),
            from_email=settings.from_email,
            reply_to=settings.reply_to,
        )

    def build_payload(self, content: EmailContent, target: EmailTarget) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "from": self.from_email,
            "to": list(target.recipients),
            "subject": content.subject,
            "html": content.html,
        }
        if content.text:
            payload["text"] = content.text
        if self.reply_to:
            payload["reply_to"] = self.reply_to
        if content.tag:
            payload["tags"] = [{"name": TAG_NAME, "value": content.tag}]
        return payload

    def notify(
        self, content: EmailContent, target: Union[EmailTarget, Dict[str, Any]]
    ) -> NotifierResult:
        """Send an email.

        Returns:
            Result with `success` false when Resend rejects the email or is unreachable.
        """
        target = self.parse_target(target)
        try:
            response = self.client.send_email(self.build_payload(content, target))
            if not response.ok:
                logger.error(
                    f"Resend rejected '{content.tag or content.subject}' "
                    f"with {response.status_code}: {response.text[:500]}"
                )
            return NotifierResult(
                target=target.to_dict(),
                success=response.ok,
                response=parse_json(response, response.text),
            )
        except Exception as e:
            logger.error(f"Failed to send '{content.tag or content.subject}': {e}")
            return NotifierResult(target=target.to_dict(), success=False, response=str(e))

    def send(
        self,
        content: EmailContent,
        target: Union[EmailTarget, Dict[str, Any]],
        error_message: str = "Failed to send email",
    ) -> NotifierResult:
        """Send an email whose delivery is required for the request to succeed.

        Raises:
            UpstreamError: If the email could not be delivered.
        """
        result = self.notify(content, target)
        if not result.success:
            raise UpstreamError(error_message)
        return result
