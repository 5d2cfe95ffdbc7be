"""Environment configuration for Narra handlers.

Each third party is described by an immutable settings dataclass resolved from
environment variables. `from_env()` raises `ConfigurationError` when a required
value is missing, which handlers surface as a 500 before any network call.
"""

__all__ = [
    "AppSettings",
    "OpenAISettings",
    "ResendSettings",
    "StripeSettings",
    "SupabaseSettings",
]

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from aibs_informatics_core.utils.logging import get_logger
from aibs_informatics_core.utils.os_operations import get_env_var

from narra_lambda.common.api.errors import ConfigurationError

logger = get_logger(__name__)

# ----------------------------------------------------------
# Environment variable names
# ----------------------------------------------------------

SUPABASE_URL_ENV_VARS = (
    "SUPABASE_URL",
    "SUPABASE_REST_URL",
    "SUPABASE_URL_PUBLIC",
    "SUPABASE_PROJECT_URL",
    "PUBLIC_SUPABASE_URL",
    "PUBLIC_SUPABASE_REST_URL",
    "PUBLIC_SUPABASE_PROJECT_URL",
)
SUPABASE_SERVICE_KEY_ENV_VARS = (
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_SERVICE_ROLE",
    "SUPABASE_SERVICE_KEY",
    "SUPABASE_ADMIN_KEY",
    "SUPABASE_SECRET_KEY",
    "SUPABASE_SERVICE_ROLE_TOKEN",
    "PUBLIC_SUPABASE_SERVICE_ROLE_KEY",
    "PUBLIC_SUPABASE_SERVICE_ROLE",
)
SUPABASE_ANON_KEY_ENV_VARS = (
    "PUBLIC_SUPABASE_ANON_KEY",
    "SUPABASE_ANON_KEY",
    "NEXT_PUBLIC_SUPABASE_ANON_KEY",
    "REACT_APP_SUPABASE_ANON_KEY",
    "SUPABASE_PUBLIC_ANON_KEY",
    "SUPABASE_CLIENT_ANON_KEY",
)
SUPABASE_COMPOSITE_ENV_VARS = ("SUPABASE", "SUPABASE_CONFIG", "SUPABASE_CREDENTIALS", "PUBLIC_SUPABASE")

COMPOSITE_URL_KEYS = ("url", "restUrl", "rest_url", "rest", "projectUrl", "project_url")
COMPOSITE_SERVICE_KEY_KEYS = (
    "serviceKey",
    "service_key",
    "serviceRoleKey",
    "service_role_key",
    "serviceRole",
    "service_role",
    "serviceToken",
    "service_token",
)
COMPOSITE_ANON_KEY_KEYS = ("anonKey", "anon_key", "publicAnonKey", "public_anon_key", "anon", "publicAnon")

RESEND_API_KEY_ENV_VAR = "RESEND_API_KEY"
RESEND_FROM_EMAIL_ENV_VAR = "RESEND_FROM_EMAIL"
RESEND_REPLY_TO_ENV_VAR = "RESEND_REPLY_TO"

STRIPE_SECRET_KEY_ENV_VAR = "STRIPE_SECRET_KEY"
STRIPE_PRICE_ID_ENV_VAR = "STRIPE_PRICE_ID"
STRIPE_COUPON_ID_ENV_VAR = "STRIPE_COUPON_ID"
DEFAULT_STRIPE_PRICE_ID = "price_1SZfF1CA2DgWjmuROEZkHE1G"
DEFAULT_STRIPE_COUPON_ID = "egeS4YL0"

OPENAI_API_KEY_ENV_VAR = "OPENAI_API_KEY"
OPENAI_PROJECT_ENV_VARS = ("OPENAI_PROJECT_ID", "OPENAI_PROJECT")
OPENAI_ORGANIZATION_ENV_VARS = ("OPENAI_ORG_ID", "OPENAI_ORGANIZATION")

APP_URL_ENV_VAR = "APP_URL"
DEFAULT_APP_URL = "https://narra.mx"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _pick(source: Dict[str, Any], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        if isinstance(source.get(key), str) and (value := _clean(source[key])):
            return value
    return None


def _load_composite() -> Dict[str, Any]:
    for env_var in SUPABASE_COMPOSITE_ENV_VARS:
        raw = get_env_var(env_var)
        if not raw:
            continue
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring {env_var}: value is not valid JSON")
            continue
        if isinstance(parsed, dict):
            return parsed
    return {}


@dataclass(frozen=True)
class SupabaseSettings:
    """Connection settings for the Supabase project.

    Attributes:
        url: Project base URL without trailing slash.
        service_key: Service role key (admin API and PostgREST with RLS bypass).
        anon_key: Public anon key, used when only public RPCs are needed.
    """

    url: Optional[str]
    service_key: Optional[str]
    anon_key: Optional[str] = None

    @classmethod
    def resolve(cls) -> "SupabaseSettings":
        """Resolve settings from the environment without validating them."""
        composite = _load_composite()
        url = _clean(get_env_var(*SUPABASE_URL_ENV_VARS)) or _pick(composite, COMPOSITE_URL_KEYS)
        service_key = _clean(get_env_var(*SUPABASE_SERVICE_KEY_ENV_VARS)) or _pick(
            composite, COMPOSITE_SERVICE_KEY_KEYS
        )
        anon_key = _clean(get_env_var(*SUPABASE_ANON_KEY_ENV_VARS)) or _pick(
            composite, COMPOSITE_ANON_KEY_KEYS
        )
        return cls(url=url.rstrip("/") if url else None, service_key=service_key, anon_key=anon_key)

    @classmethod
    def from_env(
        cls, message: str = "Server configuration error", allow_anon: bool = False
    ) -> "SupabaseSettings":
        """Resolve and validate the settings.

        Args:
            message (str): Error message when the settings are incomplete.
            allow_anon (bool): Accept the anon key when no service key is configured.
        """
        settings = cls.resolve()
        key = settings.service_key or (settings.anon_key if allow_anon else None)
        if not settings.url or not key:
            logger.error(f"Missing Supabase configuration: {cls.diagnostics()}")
            raise ConfigurationError(message)
        return settings

    @classmethod
    def diagnostics(cls) -> Dict[str, List[str]]:
        """List which candidate variables were checked and which were found."""
        candidates = (
            *SUPABASE_URL_ENV_VARS,
            *SUPABASE_SERVICE_KEY_ENV_VARS,
            *SUPABASE_ANON_KEY_ENV_VARS,
            *SUPABASE_COMPOSITE_ENV_VARS,
        )
        return {
            "checked": list(candidates),
            "found": [name for name in candidates if get_env_var(name)],
        }

    @property
    def api_key(self) -> str:
        """Service key when present, otherwise the anon key."""
        return self.service_key or self.anon_key or ""


@dataclass(frozen=True)
class ResendSettings:
    api_key: str
    from_email: str
    reply_to: Optional[str] = None

    @classmethod
    def from_env(
        cls, message: Optional[str] = "Email service not configured"
    ) -> "ResendSettings":
        """Resolve the Resend settings.

        Args:
            message (Optional[str]): Error message when a variable is missing. None reports
                the missing variable, e.g. `RESEND_API_KEY not configured`.
        """
        api_key = _clean(get_env_var(RESEND_API_KEY_ENV_VAR))
        from_email = _clean(get_env_var(RESEND_FROM_EMAIL_ENV_VAR))
        required = ((RESEND_API_KEY_ENV_VAR, api_key), (RESEND_FROM_EMAIL_ENV_VAR, from_email))
        for env_var, value in required:
            if not value:
                logger.error(f"Missing {env_var}")
                raise ConfigurationError(message or f"{env_var} not configured")
        return cls(
            api_key=api_key or "",
            from_email=from_email or "",
            reply_to=_clean(get_env_var(RESEND_REPLY_TO_ENV_VAR)),
        )


@dataclass(frozen=True)
class StripeSettings:
    secret_key: str
    price_id: str = DEFAULT_STRIPE_PRICE_ID
    coupon_id: str = DEFAULT_STRIPE_COUPON_ID

    @classmethod
    def from_env(cls, message: str = "Stripe not configured") -> "StripeSettings":
        secret_key = _clean(get_env_var(STRIPE_SECRET_KEY_ENV_VAR))
        if not secret_key:
            logger.error(f"Missing {STRIPE_SECRET_KEY_ENV_VAR}")
            raise ConfigurationError(message)
        return cls(
            secret_key=secret_key,
            price_id=_clean(get_env_var(STRIPE_PRICE_ID_ENV_VAR)) or DEFAULT_STRIPE_PRICE_ID,
            coupon_id=_clean(get_env_var(STRIPE_COUPON_ID_ENV_VAR)) or DEFAULT_STRIPE_COUPON_ID,
        )


@dataclass(frozen=True)
class OpenAISettings:
    """OpenAI credentials and optional project / organization scoping."""

    api_key: str
    project_id: Optional[str] = None
    organization_id: Optional[str] = None

    @classmethod
    def from_env(cls, message: str = "Missing OPENAI_API_KEY") -> "OpenAISettings":
        api_key = _clean(get_env_var(OPENAI_API_KEY_ENV_VAR))
        if not api_key:
            logger.error(f"Missing {OPENAI_API_KEY_ENV_VAR}")
            raise ConfigurationError(message)
        project_id = _clean(get_env_var(*OPENAI_PROJECT_ENV_VARS)) or derive_project_id(api_key)
        return cls(
            api_key=api_key,
            project_id=project_id,
            organization_id=_clean(get_env_var(*OPENAI_ORGANIZATION_ENV_VARS)),
        )


def derive_project_id(api_key: str) -> Optional[str]:
    """Extract the project id embedded in project scoped keys (`sk-proj-proj_<id>-...`)."""
    prefix = "sk-proj-"
    if not api_key.startswith(prefix):
        return None
    remainder = api_key[len(prefix) :]
    candidate = remainder.split("-", 1)[0] if remainder.find("-") > 0 else remainder
    return candidate if candidate.startswith("proj_") else None


@dataclass(frozen=True)
class AppSettings:
    url: str = DEFAULT_APP_URL

    @classmethod
    def from_env(cls) -> "AppSettings":
        url = _clean(get_env_var(APP_URL_ENV_VAR)) or DEFAULT_APP_URL
        return cls(url=url.rstrip("/"))
