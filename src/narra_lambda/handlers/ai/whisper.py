"""Audio transcription proxy with model fallbacks."""

__all__ = [
    "FallbackPolicy",
    "TranscriptionHandler",
]

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import httpx
from aibs_informatics_core.utils.logging import get_logger

from narra_lambda.clients.openai import AudioFile
from narra_lambda.common.api.errors import RequestValidationError
from narra_lambda.common.api.response import ApiResponse
from narra_lambda.handlers.ai.base import OpenAIApiHandler
from narra_lambda.handlers.ai.model import TranscriptionRequest
from narra_lambda.handlers.ai.multipart import parse_multipart_form

logger = get_logger(__name__)

FALLBACK_TRANSCRIPTION_MODELS = ("gpt-4o-mini-transcribe", "whisper-1")
DEFAULT_AUDIO_FILENAME = "audio.webm"
DEFAULT_AUDIO_CONTENT_TYPE = "audio/webm"


@dataclass
class FallbackPolicy:
    """Ordered model candidates tried until one succeeds.

    The requested model goes first, followed by the fallbacks. Duplicates are tried
    once. A result with a status of 400 or more moves on to the next candidate; the
    last result is returned whatever its status.

    Example:
        >>> FallbackPolicy().candidates("whisper-1")
        ['whisper-1', 'gpt-4o-mini-transcribe']
    """

    fallbacks: Sequence[str] = field(default_factory=lambda: FALLBACK_TRANSCRIPTION_MODELS)

    def candidates(self, requested: str) -> List[str]:
        ordered: List[str] = []
        for model in [requested, *self.fallbacks]:
            if model and model not in ordered:
                ordered.append(model)
        return ordered

    def run(self, requested: str, attempt: Callable[[str], httpx.Response]) -> httpx.Response:
        candidates = self.candidates(requested)
        for index, model in enumerate(candidates):
            response = attempt(model)
            if response.status_code < 400:
                return response
            if index < len(candidates) - 1:
                logger.warning(f"Transcription with {model} failed ({response.status_code})")
        return response


@dataclass
class TranscriptionHandler(OpenAIApiHandler[TranscriptionRequest]):
    """Transcribe audio sent raw or as `multipart/form-data`.

    `model` and `language` come from the query string (defaults `gpt-4o-mini-transcribe`
    and `es`). Fields of a multipart form are forwarded as-is, except `model` which is
    set by the fallback policy. Only the first file of a form is sent, preferring a
    `file` field. OpenAI's status and body are passed through.
    """

    decode_body = False

    @classmethod
    def route_name(cls) -> str:
        return "whisper"

    def handle(self, request: TranscriptionRequest) -> ApiResponse:
        fields, audio = self.transcription_form(request)
        if audio is None:
            raise RequestValidationError("Audio file is required")

        def attempt(model: str) -> httpx.Response:
            return self.openai.transcribe(model, audio, fields)

        response = FallbackPolicy().run(request.model, attempt)
        self.log.info(f"Transcription answered {response.status_code}")
        return ApiResponse(body=response.text, status_code=response.status_code)

    def transcription_form(
        self, request: TranscriptionRequest
    ) -> Tuple[Dict[str, str], Optional[AudioFile]]:
        content_type = self.header("content-type") or ""
        fields = {"language": request.language, "response_format": "json"}
        if "multipart/form-data" in content_type:
            form = parse_multipart_form(self.raw_body(), content_type)
            if form is None:
                raise RequestValidationError("Invalid multipart body")
            fields.update(form.fields)
            fields.pop("model", None)
            upload = form.files.get("file") or next(iter(form.files.values()), None)
            if upload is None:
                return fields, None
            return fields, (upload.filename, upload.content, upload.content_type)

        audio = self.raw_body()
        if not audio:
            return fields, None
        return fields, (DEFAULT_AUDIO_FILENAME, audio, content_type or DEFAULT_AUDIO_CONTENT_TYPE)


transcription_handler = TranscriptionHandler.get_handler()
