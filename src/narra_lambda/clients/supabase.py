"""Supabase Auth admin, PostgREST and RPC client."""

__all__ = [
    "SupabaseClient",
    "eq",
    "in_",
]

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

import requests
from aibs_informatics_core.utils.logging import get_logger

from narra_lambda.clients.base import HttpClient, parse_json, raise_for_upstream
from narra_lambda.config import SupabaseSettings

logger = get_logger(__name__)

USERS_PAGE_SIZE = 1000


def eq(value: Any) -> str:
    """PostgREST equality filter value."""
    return f"eq.{value}"


def in_(values: Iterable[Any]) -> str:
    """PostgREST membership filter value."""
    return f"in.({','.join(str(v) for v in values)})"


@dataclass
class SupabaseClient(HttpClient):
    """Client for the Supabase project using the service role key.

    Auth admin calls live under `/auth/v1`, table access under `/rest/v1/<table>`
    with PostgREST filters passed as query parameters (`{"email": eq(email)}`),
    and stored procedures under `/rest/v1/rpc/<function>`.
    """

    api_key: str = ""

    @classmethod
    def from_settings(cls, settings: SupabaseSettings) -> "SupabaseClient":
        return cls(base_url=settings.url or "", api_key=settings.api_key)

    def default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "apikey": self.api_key,
            "Content-Type": "application/json",
        }

    # ----------------------------------------------------------
    # Auth admin
    # ----------------------------------------------------------

    def list_users(
        self, email: Optional[str] = None, error_message: str = "Error al verificar usuario"
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"per_page": USERS_PAGE_SIZE}
        if email:
            params["email"] = email
        response = self.request("GET", "/auth/v1/admin/users", params=params)
        raise_for_upstream(response, error_message)
        payload = parse_json(response, {})
        users = payload.get("users", []) if isinstance(payload, dict) else payload
        return users or []

    def find_user_by_email(self, email: str, **kwargs) -> Optional[Dict[str, Any]]:
        """Find an auth user by (case insensitive) email.

        Returns:
            The user object, or None when no account uses the address.
        """
        target = email.strip().lower()
        for user in self.list_users(email=target, **kwargs):
            if (user.get("email") or "").lower() == target:
                return user
        return None

    def is_email_taken(
        self, email: str, exclude_user_id: Optional[str] = None, **kwargs
    ) -> bool:
        user = self.find_user_by_email(email, **kwargs)
        return user is not None and user.get("id") != exclude_user_id

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        response = self.request("GET", f"/auth/v1/admin/users/{user_id}")
        if response.status_code == 404:
            return None
        raise_for_upstream(response, "Error al obtener el usuario")
        return parse_json(response, {})

    def create_user(
        self,
        email: str,
        password: Optional[str] = None,
        email_confirm: bool = True,
        user_metadata: Optional[Mapping[str, Any]] = None,
        error_message: str = "Error al crear la cuenta",
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"email": email, "email_confirm": email_confirm}
        if password:
            body["password"] = password
        if user_metadata:
            body["user_metadata"] = dict(user_metadata)
        response = self.request("POST", "/auth/v1/admin/users", json=body)
        raise_for_upstream(response, error_message)
        return parse_json(response, {})

    def update_user(
        self,
        user_id: str,
        attributes: Mapping[str, Any],
        error_message: str = "Error al actualizar el usuario",
    ) -> Dict[str, Any]:
        response = self.request("PUT", f"/auth/v1/admin/users/{user_id}", json=dict(attributes))
        raise_for_upstream(response, error_message)
        return parse_json(response, {})

    def delete_user(self, user_id: str) -> bool:
        response = self.request("DELETE", f"/auth/v1/admin/users/{user_id}")
        if not response.ok:
            logger.error(f"Failed to delete auth user {user_id}: {response.status_code}")
        return response.ok

    def generate_link(
        self,
        email: str,
        redirect_to: Optional[str] = None,
        link_type: str = "magiclink",
        error_message: str = "Error al generar enlace de acceso",
    ) -> Dict[str, Any]:
        """Generate an auth link (magic link / OTP) for an existing user.

        Returns:
            The generate_link payload. `properties.action_link` and
            `properties.email_otp` carry the link and the 6 digit code.
        """
        body: Dict[str, Any] = {"type": link_type, "email": email}
        if redirect_to:
            body["options"] = {"redirect_to": redirect_to}
        response = self.request("POST", "/auth/v1/admin/generate_link", json=body)
        raise_for_upstream(response, error_message)
        return parse_json(response, {})

    def get_user_from_token(self, access_token: str) -> Optional[Dict[str, Any]]:
        """Resolve the user owning a session access token. None when rejected."""
        response = self.request(
            "GET",
            "/auth/v1/user",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not response.ok:
            logger.info(f"Access token rejected with status {response.status_code}")
            return None
        user = parse_json(response, None)
        return user if isinstance(user, dict) and user.get("id") else None

    # ----------------------------------------------------------
    # PostgREST
    # ----------------------------------------------------------

    def select(
        self,
        table: str,
        filters: Optional[Mapping[str, str]] = None,
        columns: str = "*",
        order: Optional[str] = None,
        limit: Optional[int] = None,
        error_message: str = "Error al consultar la base de datos",
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {**(filters or {}), "select": columns}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit
        response = self.request("GET", f"/rest/v1/{table}", params=params)
        raise_for_upstream(response, error_message)
        return parse_json(response, []) or []

    def select_one(
        self, table: str, filters: Mapping[str, str], columns: str = "*", **kwargs
    ) -> Optional[Dict[str, Any]]:
        rows = self.select(table, filters, columns=columns, limit=1, **kwargs)
        return rows[0] if rows else None

    def insert(
        self,
        table: str,
        rows: Any,
        returning: bool = True,
        ignore_duplicates: bool = False,
        error_message: str = "Error al guardar en la base de datos",
    ) -> List[Dict[str, Any]]:
        prefer = ["return=representation" if returning else "return=minimal"]
        if ignore_duplicates:
            prefer.append("resolution=ignore-duplicates")
        response = self.request(
            "POST", f"/rest/v1/{table}", json=rows, headers={"Prefer": ",".join(prefer)}
        )
        raise_for_upstream(response, error_message)
        return (parse_json(response, []) or []) if returning else []

    def update(
        self,
        table: str,
        filters: Mapping[str, str],
        values: Mapping[str, Any],
        returning: bool = False,
        error_message: str = "Error al actualizar la base de datos",
    ) -> List[Dict[str, Any]]:
        response = self.request(
            "PATCH",
            f"/rest/v1/{table}",
            params=dict(filters),
            json=dict(values),
            headers={"Prefer": "return=representation" if returning else "return=minimal"},
        )
        raise_for_upstream(response, error_message)
        return (parse_json(response, []) or []) if returning else []

    def delete(
        self,
        table: str,
        filters: Mapping[str, str],
        error_message: str = "Error al eliminar de la base de datos",
    ) -> List[Dict[str, Any]]:
        response = self.request(
            "DELETE",
            f"/rest/v1/{table}",
            params=dict(filters),
            headers={"Prefer": "return=representation"},
        )
        raise_for_upstream(response, error_message)
        deleted = parse_json(response, [])
        return deleted if isinstance(deleted, list) else []

    def call_rpc(self, function: str, params: Mapping[str, Any]) -> requests.Response:
        """Call a stored procedure and return the raw response."""
        return self.request(
            "POST",
            f"/rest/v1/rpc/{function}",
            json=dict(params),
            headers={"Prefer": "return=representation"},
        )

    def rpc(
        self,
        function: str,
        params: Mapping[str, Any],
        error_message: str = "Error al procesar la solicitud",
    ) -> Any:
        response = self.call_rpc(function, params)
        raise_for_upstream(response, error_message)
        return parse_json(response, None)
