from dataclasses import dataclass

from openai import APIConnectionError

from narra_lambda.clients.base import parse_json
from narra_lambda.common.api.response import ApiResponse
from narra_lambda.handlers.ai.base import OpenAIApiHandler
from narra_lambda.handlers.ai.model import ChatCompletionRequest


@dataclass
class OpenAIChatHandler(OpenAIApiHandler[ChatCompletionRequest]):
    """Proxy a chat completion to OpenAI.

    The upstream status and JSON body are passed through. A body that is not JSON is
    wrapped as `{"raw": <text>}`.
    """

    body_required = True
    openai_config_message = "OPENAI_API_KEY not configured"

    @classmethod
    def route_name(cls) -> str:
        return "openai"

    def handle(self, request: ChatCompletionRequest) -> ApiResponse:
        payload = request.openai_payload()
        try:
            response = self.openai.chat_completions(payload)
        except APIConnectionError as e:
            self.log.error(f"OpenAI chat completion failed: {e}")
            return ApiResponse.json({"error": "OpenAI proxy failed", "detail": str(e)}, 500)
        self.log.info(f"Chat completion with {payload['model']} answered {response.status_code}")
        return ApiResponse.json(parse_json(response, {"raw": response.text}), response.status_code)


openai_chat_handler = OpenAIChatHandler.get_handler()
