"""Resend transactional email client."""

__all__ = [
    "ResendClient",
]

from dataclasses import dataclass
from typing import Any, Dict, Mapping

import requests

from narra_lambda.clients.base import HttpClient
from narra_lambda.config import ResendSettings

RESEND_API_URL = "https://api.resend.com"


@dataclass
class ResendClient(HttpClient):
    base_url: str = RESEND_API_URL
    api_key: str = ""

    @classmethod
    def from_settings(cls, settings: ResendSettings) -> "ResendClient":
        return cls(api_key=settings.api_key)

    def default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def send_email(self, payload: Mapping[str, Any]) -> requests.Response:
        """POST an email to `/emails`.

        Args:
            payload (Mapping[str, Any]): Resend email body (`from`, `to`, `subject`, `html`, ...).

        Returns:
            The raw Resend response.
        """
        return self.request("POST", "/emails", json=dict(payload))
