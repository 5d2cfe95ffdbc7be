"""Small helpers shared by handlers: tokens, timestamps, rounding and auth link repair."""

__all__ = [
    "generate_password",
    "generate_token",
    "js_round",
    "repair_magic_link",
    "utc_now_iso",
]

import re
import secrets
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from aibs_informatics_core.utils.logging import get_logger

logger = get_logger(__name__)

PASSWORD_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789!@#$%^&*"
LOCALHOST_PATTERN = re.compile(r"https?://localhost:\d+")


def generate_token(num_bytes: int = 32) -> str:
    """Opaque random hex token (64 characters for the default 32 bytes)."""
    return secrets.token_hex(num_bytes)


def generate_password(length: int = 32) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def utc_now_iso(offset: Optional[timedelta] = None) -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision and `Z` suffix."""
    now = datetime.now(timezone.utc) + (offset or timedelta())
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def js_round(value: float) -> int:
    """Round half away from zero for positive values, like `Math.round`."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def repair_magic_link(link: str, app_url: str) -> str:
    """Fix the `redirect_to` of a generated auth link so it lands on `<app_url>/app`.

    * `http(s)://localhost:<port>` is replaced by `app_url`.
    * A trailing `/app/app` collapses to `/app`.
    * `/app` is appended when the path does not already end with it.

    Args:
        link (str): The generated action link.
        app_url (str): Public base URL of the app.

    Returns:
        The repaired link. Links without `redirect_to` are returned unchanged.
    """
    try:
        parts = urlsplit(link)
        query = parse_qsl(parts.query, keep_blank_values=True)
        redirect = next((value for key, value in query if key == "redirect_to"), None)
        if not redirect:
            return link

        if "localhost" in redirect:
            redirect = LOCALHOST_PATTERN.sub(app_url, redirect)

        redirect_parts = urlsplit(redirect)
        path = redirect_parts.path
        if path.endswith("/app/app"):
            path = path[: -len("/app")]
        elif not path.endswith("/app"):
            path = path.rstrip("/") + "/app"
        redirect = urlunsplit(redirect_parts._replace(path=path))

        query = [(key, redirect if key == "redirect_to" else value) for key, value in query]
        return urlunsplit(parts._replace(query=urlencode(query)))
    except ValueError as e:
        logger.error(f"Could not repair magic link: {e}")
        return link
