__all__ = [
    "ChatCompletionRequest",
    "RealtimeSessionRequest",
    "TranscriptionRequest",
]

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from aibs_informatics_core.models.base import RawField, StringField, custom_field

from narra_lambda.common.api.errors import RequestValidationError
from narra_lambda.common.api.model import ApiRequest

DEFAULT_CHAT_MODEL = "gpt-4.1"
DEFAULT_CHAT_TEMPERATURE = 0.7

DEFAULT_TRANSCRIPTION_MODEL = "gpt-4o-mini-transcribe"
DEFAULT_TRANSCRIPTION_LANGUAGE = "es"

REALTIME_MODELS = frozenset(
    [
        "gpt-4o-mini-transcribe",
        "gpt-4o-transcribe-latest",
        "gpt-4o-transcribe",
        "whisper-1",
    ]
)
# whisper-1 is accepted but cannot back a realtime session.
REALTIME_UNSUPPORTED_MODELS = frozenset(["whisper-1"])
DEFAULT_REALTIME_MODALITIES = ["text"]
DEFAULT_REALTIME_VOICE = "alloy"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


@dataclass
class ChatCompletionRequest(ApiRequest):
    invalid_message = "Invalid request: messages[] required"

    messages: Any = custom_field(mm_field=RawField(allow_none=True), default=None)
    model: Any = custom_field(mm_field=RawField(allow_none=True), default=None)
    temperature: Any = custom_field(mm_field=RawField(allow_none=True), default=None)
    response_format: Any = custom_field(mm_field=RawField(allow_none=True), default=None)
    max_tokens: Any = custom_field(mm_field=RawField(allow_none=True), default=None)

    def validate_request(self) -> None:
        if not isinstance(self.messages, list):
            raise RequestValidationError(self.invalid_message)

    def openai_payload(self) -> Dict[str, Any]:
        """Chat completion body with the default model and temperature filled in."""
        payload: Dict[str, Any] = {
            "model": self.model if isinstance(self.model, str) else DEFAULT_CHAT_MODEL,
            "messages": self.messages,
            "temperature": (
                self.temperature if _is_number(self.temperature) else DEFAULT_CHAT_TEMPERATURE
            ),
        }
        if isinstance(self.response_format, dict):
            payload["response_format"] = self.response_format
        if _is_number(self.max_tokens) and self.max_tokens > 0:
            payload["max_tokens"] = int(self.max_tokens)
        return payload


@dataclass
class TranscriptionRequest(ApiRequest):
    """Query string options of a transcription. The audio itself is the raw body."""

    model: str = custom_field(mm_field=StringField(), default="")
    language: str = custom_field(mm_field=StringField(), default="")

    def validate_request(self) -> None:
        self.model = self.model.strip() or DEFAULT_TRANSCRIPTION_MODEL
        self.language = self.language.strip() or DEFAULT_TRANSCRIPTION_LANGUAGE


def resolve_realtime_model(value: Any) -> str:
    """Allowed realtime model, or the default for anything else."""
    if not isinstance(value, str) or not value.strip():
        return DEFAULT_TRANSCRIPTION_MODEL
    model = value.strip()
    if model not in REALTIME_MODELS or model in REALTIME_UNSUPPORTED_MODELS:
        return DEFAULT_TRANSCRIPTION_MODEL
    return model


@dataclass
class RealtimeSessionRequest(ApiRequest):
    model: Any = custom_field(mm_field=RawField(allow_none=True), default=None)
    voice: Any = custom_field(mm_field=RawField(allow_none=True), default=None)
    modalities: Any = custom_field(mm_field=RawField(allow_none=True), default=None)
    instructions: Any = custom_field(mm_field=RawField(allow_none=True), default=None)
    temperature: Any = custom_field(mm_field=RawField(allow_none=True), default=None)

    def session_payload(self) -> Dict[str, Any]:
        """Realtime session body: PCM16 audio in and out, server side voice activity detection."""
        modalities: List[str] = (
            self.modalities if isinstance(self.modalities, list) else DEFAULT_REALTIME_MODALITIES
        )
        payload: Dict[str, Any] = {
            "model": resolve_realtime_model(self.model),
            "modalities": modalities,
            "input_audio_format": "pcm16",
            "output_audio_format": "pcm16",
            "turn_detection": {
                "type": "server_vad",
                "threshold": 0.5,
                "prefix_padding_ms": 300,
                "silence_duration_ms": 500,
            },
        }
        instructions: Optional[str] = (
            self.instructions.strip() if isinstance(self.instructions, str) else None
        )
        if instructions:
            payload["instructions"] = instructions
        payload["voice"] = (
            self.voice if isinstance(self.voice, str) and self.voice else DEFAULT_REALTIME_VOICE
        )
        payload["temperature"] = self.temperature if self.temperature is not None else 0
        return payload
