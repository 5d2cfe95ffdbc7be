"""Shared HTTP plumbing for third party REST clients."""

__all__ = [
    "DEFAULT_TIMEOUT",
    "HttpClient",
    "parse_json",
    "raise_for_upstream",
]

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

import httpx
import requests
from aibs_informatics_core.utils.logging import get_logger

from narra_lambda.common.api.errors import UpstreamError

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30


def parse_json(response: Union[requests.Response, httpx.Response], default: Any = None) -> Any:
    """Decode a JSON response body, returning `default` when it is not JSON.

    Works with `requests` responses and with the `httpx` responses of the OpenAI SDK.
    """
    try:
        return response.json()
    except ValueError:
        return default


def raise_for_upstream(
    response: requests.Response,
    message: str,
    status_code: int = 500,
) -> requests.Response:
    """Raise an `UpstreamError` when the response is not a 2xx.

    Args:
        response (requests.Response): The third party response.
        message (str): Error message surfaced to the caller.
        status_code (int): Status of the surfaced error. Defaults to 500.

    Returns:
        The response, when successful.
    """
    if response.ok:
        return response
    logger.error(
        f"{response.request.method if response.request else ''} {response.url} "
        f"failed with {response.status_code}: {response.text[:1000]}"
    )
    raise UpstreamError(message, status_code=status_code, upstream_status=response.status_code)


@dataclass
class HttpClient:
    """Minimal REST client bound to a base URL.

    Each thread calling the client gets its own `requests.Session`, so one client can be
    shared by the workers of a thread pool.

    Attributes:
        base_url: Prefix for relative paths.
        timeout: Per request timeout in seconds.
    """

    base_url: str
    timeout: float = DEFAULT_TIMEOUT
    _sessions: threading.local = field(
        default_factory=threading.local, init=False, repr=False, compare=False
    )

    @property
    def session(self) -> requests.Session:
        """The `requests` session of the calling thread."""
        session = getattr(self._sessions, "session", None)
        if session is None:
            session = self._sessions.session = requests.Session()
        return session

    def default_headers(self) -> Dict[str, str]:
        return {}

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        data: Any = None,
        files: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> requests.Response:
        url = self.url_for(path)
        merged_headers = {**self.default_headers(), **(headers or {})}
        logger.debug(f"{method} {url} params={params}")
        return self.session.request(
            method,
            url,
            params=params,
            json=json,
            data=data,
            files=files,
            headers=merged_headers,
            timeout=self.timeout,
        )
