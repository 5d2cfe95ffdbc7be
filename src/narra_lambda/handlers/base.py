"""Base handler wired to the Narra third parties, plus shared author helpers."""

__all__ = [
    "NarraApiHandler",
    "fallback_author_name",
    "fetch_author_display_name",
]

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Generic, Optional, Union

import requests
from aibs_informatics_core.utils.logging import get_logger

from narra_lambda.clients.supabase import SupabaseClient, eq
from narra_lambda.common.api.errors import ConfigurationError, UnauthorizedError, UpstreamError
from narra_lambda.common.api.handler import API_REQUEST, ApiLambdaHandler
from narra_lambda.config import AppSettings, SupabaseSettings
from narra_lambda.notifications.model import EmailContent, EmailTarget
from narra_lambda.notifications.resend import ResendNotifier

logger = get_logger(__name__)

DEFAULT_AUTHOR_NAME = "Tu autor/a en Narra"


def fallback_author_name(email: Optional[str], default_label: str = DEFAULT_AUTHOR_NAME) -> str:
    """Local part of the email, or `default_label` when there is none."""
    if isinstance(email, str):
        local_part = email.split("@")[0].strip()
        if local_part:
            return local_part
    return default_label


def fetch_author_display_name(
    supabase: SupabaseClient, user_id: Optional[str], fallback_email: Optional[str] = None
) -> str:
    """Public name of an author.

    Uses `user_settings.public_author_name`, then the local part of the email,
    then a generic label. Lookup failures fall through to the fallbacks.
    """
    if not user_id:
        return fallback_author_name(fallback_email)
    try:
        row = supabase.select_one(
            "user_settings", {"user_id": eq(user_id)}, columns="public_author_name"
        )
    except (UpstreamError, requests.RequestException) as e:
        logger.warning(f"Could not fetch display name for {user_id}: {e}")
        row = None
    public_name = (row or {}).get("public_author_name")
    if isinstance(public_name, str) and public_name.strip():
        return public_name.strip()
    return fallback_author_name(fallback_email)


@dataclass  # type: ignore[misc] # mypy #5374
class NarraApiHandler(ApiLambdaHandler[API_REQUEST], Generic[API_REQUEST]):
    """API handler with Supabase, email and app settings resolved per request.

    Class variables select what `validate_config()` requires:

    * `supabase_config_message`: error message when Supabase is not configured.
      None when the handler does not use Supabase.
    * `email_config_message`: error message when Resend is not configured. None makes
      email optional: `notifier` is None and emails are skipped.
    * `supabase_allow_anon`: accept the public anon key when no service key is set.
    """

    supabase_config_message: ClassVar[Optional[str]] = "Server configuration error"
    email_config_message: ClassVar[Optional[str]] = None
    supabase_allow_anon: ClassVar[bool] = False

    def validate_config(self) -> None:
        self.app_settings = AppSettings.from_env()
        if self.supabase_config_message is not None:
            settings = SupabaseSettings.from_env(
                self.supabase_config_message, allow_anon=self.supabase_allow_anon
            )
            self.supabase_settings = settings
            self.supabase = SupabaseClient.from_settings(settings)
        if self.email_config_message is not None:
            self.notifier: Optional[ResendNotifier] = ResendNotifier.from_env(
                self.email_config_message
            )
        else:
            self.notifier = self.optional_notifier()

    def optional_notifier(self) -> Optional[ResendNotifier]:
        try:
            return ResendNotifier.from_env()
        except ConfigurationError:
            self.log.warning("Email service not configured. Emails will be skipped.")
            return None

    @property
    def app_url(self) -> str:
        return self.app_settings.url

    def send_email(self, content: EmailContent, to: Union[str, EmailTarget]) -> bool:
        """Send an email without failing the request.

        Returns:
            True when the email was accepted.
        """
        if self.notifier is None:
            self.log.warning(f"Skipping '{content.tag}' email: email service not configured")
            return False
        target = to if isinstance(to, EmailTarget) else EmailTarget.to(to)
        return self.notifier.notify(content=content, target=target).success

    def deliver_email(
        self,
        content: EmailContent,
        to: Union[str, EmailTarget],
        error_message: str = "Failed to send email",
    ) -> None:
        """Send an email the request cannot succeed without.

        Raises:
            ConfigurationError: If email is not configured.
            UpstreamError: If the email was not accepted.
        """
        if self.notifier is None:
            raise ConfigurationError("Email service not configured")
        target = to if isinstance(to, EmailTarget) else EmailTarget.to(to)
        self.notifier.send(content=content, target=target, error_message=error_message)

    def author_display_name(self, user_id: Optional[str], fallback_email: Optional[str]) -> str:
        return fetch_author_display_name(self.supabase, user_id, fallback_email)

    def authenticated_user(self, rejected_message: str = "No autorizado") -> Dict[str, Any]:
        """Resolve the Supabase user owning the request's bearer token.

        Raises:
            UnauthorizedError: `No autorizado` when the header is missing, `rejected_message`
                when Supabase rejects the token.
        """
        token = self.bearer_token()
        if not token:
            raise UnauthorizedError()
        user = self.supabase.get_user_from_token(token)
        if user is None:
            raise UnauthorizedError(rejected_message)
        return user
