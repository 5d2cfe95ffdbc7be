"""OpenAI client for chat completions, audio transcription and realtime sessions.

Chat completions and transcriptions go through the official `openai` SDK. Realtime
transcription sessions are still a beta REST endpoint and are called with `requests`.
"""

__all__ = [
    "AudioFile",
    "OpenAIClient",
]

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx
import requests
from openai import APIStatusError, OpenAI

from narra_lambda.clients.base import HttpClient
from narra_lambda.config import OpenAISettings

OPENAI_API_URL = "https://api.openai.com/v1"
REALTIME_BETA_HEADER = "realtime=v1"

# (filename, content, content type)
AudioFile = Tuple[str, bytes, str]


@dataclass
class OpenAIClient(HttpClient):
    """OpenAI access scoped by the optional project and organization.

    `chat_completions` and `transcribe` return OpenAI's HTTP response whatever its
    status, so handlers can pass upstream errors through. Network failures raise
    `openai.APIConnectionError`.
    """

    base_url: str = OPENAI_API_URL
    api_key: str = ""
    project_id: Optional[str] = None
    organization_id: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: OpenAISettings) -> "OpenAIClient":
        return cls(
            api_key=settings.api_key,
            project_id=settings.project_id,
            organization_id=settings.organization_id,
        )

    def default_headers(self) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self.project_id:
            headers["OpenAI-Project"] = self.project_id
        if self.organization_id:
            headers["OpenAI-Organization"] = self.organization_id
        return headers

    def sdk_client(self) -> OpenAI:
        # Retries are left to the callers, e.g. the transcription model fallbacks
        return OpenAI(
            api_key=self.api_key,
            organization=self.organization_id,
            project=self.project_id,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
        )

    def chat_completions(self, payload: Mapping[str, Any]) -> httpx.Response:
        create = self.sdk_client().chat.completions.with_raw_response.create
        try:
            return create(**payload).http_response  # type: ignore[call-overload]
        except APIStatusError as e:
            return e.response

    def transcribe(
        self, model: str, audio: AudioFile, fields: Optional[Mapping[str, str]] = None
    ) -> httpx.Response:
        """Transcribe an audio file.

        Args:
            model (str): Transcription model.
            audio (AudioFile): The uploaded file.
            fields (Optional[Mapping[str, str]]): Other form fields, e.g. `language`,
                `prompt` or `response_format`, sent as they are.
        """
        create = self.sdk_client().audio.transcriptions.with_raw_response.create
        try:
            return create(model=model, file=audio, extra_body=dict(fields or {})).http_response
        except APIStatusError as e:
            return e.response

    def create_realtime_session(self, payload: Mapping[str, Any]) -> requests.Response:
        return self.request(
            "POST",
            "/realtime/sessions",
            json=dict(payload),
            headers={"Content-Type": "application/json", "OpenAI-Beta": REALTIME_BETA_HEADER},
        )
