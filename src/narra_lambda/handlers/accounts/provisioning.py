"""Creation of premium author accounts after a purchase or a gift activation."""

__all__ = [
    "PROFILES_TABLE",
    "SETTINGS_TABLE",
    "AccountProvisioner",
    "ProvisionedAccount",
    "default_user_settings",
]

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import requests
from aibs_informatics_core.utils.logging import get_logger

from narra_lambda.clients.supabase import SupabaseClient
from narra_lambda.common.api.errors import RequestValidationError, UpstreamError
from narra_lambda.common.utils import generate_password, repair_magic_link

logger = get_logger(__name__)

PROFILES_TABLE = "users"
SETTINGS_TABLE = "user_settings"

UNLIMITED_AI_QUERIES = 999999


def default_user_settings(user_id: str, public_author_name: Optional[str] = None) -> Dict[str, Any]:
    settings: Dict[str, Any] = {
        "user_id": user_id,
        "auto_save": True,
        "notification_stories": True,
        "notification_reminders": True,
        "sharing_enabled": False,
        "language": "es",
        "font_family": "Montserrat",
        "text_scale": 1.0,
        "high_contrast": False,
        "reduce_motion": False,
        "ai_no_bad_words": True,
        "ai_person": "first",
        "ai_fidelity": "balanced",
        "has_used_ghost_writer": False,
        "has_configured_ghost_writer": False,
    }
    if public_author_name:
        settings["public_author_name"] = public_author_name
        settings["has_confirmed_name"] = False
    return settings


@dataclass
class ProvisionedAccount:
    user_id: str
    email: str
    name: str
    magic_link: Optional[str] = None


@dataclass
class AccountProvisioner:
    """Creates the auth user, profile and settings of a new premium author.

    Attributes:
        supabase (SupabaseClient): Service role client.
        app_url (str): Public app URL, used to repair generated login links.
    """

    supabase: SupabaseClient
    app_url: str

    def ensure_available(
        self,
        email: str,
        taken_message: str,
        error_message: str = "Error al verificar disponibilidad del email",
        **extra: Any,
    ) -> None:
        """Raise a 400 `taken_message` when an account already uses `email`."""
        if self.supabase.find_user_by_email(email, error_message=error_message) is not None:
            logger.info(f"Email {email} is already registered")
            raise RequestValidationError(taken_message, **extra)

    def create_account(
        self,
        email: str,
        name: str,
        user_metadata: Mapping[str, Any],
        account_error: str = "Error al crear la cuenta",
        profile_error: str = "Error al crear el perfil de usuario",
        public_author_name: Optional[str] = None,
        profile_required: bool = True,
    ) -> ProvisionedAccount:
        """Create the auth user (unconfirmed, random password), its profile and its settings.

        Settings are best effort and skip existing rows.

        Args:
            profile_required (bool): Fail when the profile cannot be created. When False,
                the failure is logged and the account is kept.

        Raises:
            UpstreamError: If the auth user (or a required profile) cannot be created.
        """
        user = self.supabase.create_user(
            email,
            password=generate_password(),
            email_confirm=False,
            user_metadata=user_metadata,
            error_message=account_error,
        )
        user_id = user.get("id")
        if not user_id:
            raise UpstreamError(account_error)
        logger.info(f"Auth user {user_id} created for {email}")

        profile = {
            "id": user_id,
            "name": name,
            "email": email,
            "subscription_tier": "premium",
            "writing_tone": "warm",
            "stories_written": 0,
            "words_written": 0,
            "ai_queries_used": 0,
            "ai_queries_limit": UNLIMITED_AI_QUERIES,
        }
        try:
            self.supabase.insert(
                PROFILES_TABLE, profile, returning=False, error_message=profile_error
            )
        except (UpstreamError, requests.RequestException) as e:
            if profile_required:
                raise
            logger.error(f"Could not create profile for {user_id}: {e}")

        try:
            self.supabase.insert(
                SETTINGS_TABLE,
                default_user_settings(user_id, public_author_name),
                returning=False,
                ignore_duplicates=True,
            )
        except (UpstreamError, requests.RequestException) as e:
            logger.error(f"Could not create settings for {user_id}: {e}")

        return ProvisionedAccount(user_id=user_id, email=email, name=name)

    def login_link(self, email: str, error_message: str = "Error al generar enlace de acceso") -> str:
        """Generate a magic link landing on `<app_url>/app`.

        Raises:
            UpstreamError: If no action link was generated.
        """
        link_data = self.supabase.generate_link(
            email, redirect_to=f"{self.app_url}/app", error_message=error_message
        )
        action_link = (link_data.get("properties") or {}).get("action_link") or link_data.get(
            "action_link"
        )
        if not action_link:
            raise UpstreamError(error_message)
        return repair_magic_link(action_link, self.app_url)
