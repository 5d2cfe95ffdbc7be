__all__ = [
    "OpenAIApiHandler",
]

from dataclasses import dataclass
from typing import ClassVar, Generic

from narra_lambda.clients.openai import OpenAIClient
from narra_lambda.common.api.handler import API_REQUEST, ApiLambdaHandler
from narra_lambda.config import OpenAISettings


@dataclass  # type: ignore[misc] # mypy #5374
class OpenAIApiHandler(ApiLambdaHandler[API_REQUEST], Generic[API_REQUEST]):
    """API handler holding an OpenAI client.

    `openai_config_message` is the error answered when `OPENAI_API_KEY` is missing.
    """

    openai_config_message: ClassVar[str] = "OpenAI API key not configured."

    def validate_config(self) -> None:
        self.openai_settings = OpenAISettings.from_env(self.openai_config_message)
        self.openai = OpenAIClient.from_settings(self.openai_settings)
