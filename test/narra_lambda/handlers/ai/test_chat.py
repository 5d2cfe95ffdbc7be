from test.narra_lambda.base import LambdaHandlerTestCase, LambdaHandlerType, api_event

from narra_lambda.handlers.ai.chat import OpenAIChatHandler

COMPLETIONS_PATH = "/v1/chat/completions"
MESSAGES = [{"role": "user", "content": "Hola"}]


class OpenAIChatHandlerTests(LambdaHandlerTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return OpenAIChatHandler.get_handler()

    def setUp(self) -> None:
        super().setUp()
        self.set_openai_env()

    def chat(self, body):
        return self.invoke_json(api_event("/api/openai", body=body))

    def test__handle__fills_defaults_and_passes_through(self):
        completion = {"id": "chatcmpl-1", "choices": [{"message": {"content": "¡Hola!"}}]}
        self.http.add("POST", COMPLETIONS_PATH, completion)

        status, body = self.chat({"messages": MESSAGES})

        self.assertEqual(status, 200)
        self.assertEqual(body, completion)
        (call,) = self.http.calls_to("POST", COMPLETIONS_PATH)
        self.assertEqual(call.host, "api.openai.com")
        self.assertEqual(call.json, {"model": "gpt-4.1", "messages": MESSAGES, "temperature": 0.7})
        self.assertEqual(call.headers["Authorization"], "Bearer sk-test")
        self.assertNotIn("OpenAI-Project", call.headers)

    def test__handle__forwards_options(self):
        self.http.add("POST", COMPLETIONS_PATH, {"id": "chatcmpl-1"})

        self.chat(
            {
                "messages": MESSAGES,
                "model": "gpt-4o-mini",
                "temperature": 0,
                "response_format": {"type": "json_object"},
                "max_tokens": 256.0,
            }
        )

        (call,) = self.http.calls_to("POST", COMPLETIONS_PATH)
        self.assertEqual(
            call.json,
            {
                "model": "gpt-4o-mini",
                "messages": MESSAGES,
                "temperature": 0,
                "response_format": {"type": "json_object"},
                "max_tokens": 256,
            },
        )

    def test__handle__ignores_invalid_options(self):
        self.http.add("POST", COMPLETIONS_PATH, {"id": "chatcmpl-1"})

        self.chat(
            {
                "messages": MESSAGES,
                "model": 4,
                "temperature": True,
                "response_format": "json",
                "max_tokens": -5,
            }
        )

        (call,) = self.http.calls_to("POST", COMPLETIONS_PATH)
        self.assertEqual(call.json, {"model": "gpt-4.1", "messages": MESSAGES, "temperature": 0.7})

    def test__handle__project_key_scopes_requests(self):
        self.set_openai_env("sk-proj-proj_abc123-secret")
        self.http.add("POST", COMPLETIONS_PATH, {"id": "chatcmpl-1"})

        self.chat({"messages": MESSAGES})

        (call,) = self.http.calls_to("POST", COMPLETIONS_PATH)
        self.assertEqual(call.headers["OpenAI-Project"], "proj_abc123")

    def test__handle__organization_scopes_requests(self):
        self.set_env_vars(("OPENAI_ORGANIZATION", "org_narra"))
        self.http.add("POST", COMPLETIONS_PATH, {"id": "chatcmpl-1"})

        self.chat({"messages": MESSAGES})

        (call,) = self.http.calls_to("POST", COMPLETIONS_PATH)
        self.assertEqual(call.headers["OpenAI-Organization"], "org_narra")

    def test__handle__passes_upstream_error_status(self):
        error = {"error": {"message": "Rate limit reached", "type": "rate_limit"}}
        self.http.add("POST", COMPLETIONS_PATH, error, status=429)

        status, body = self.chat({"messages": MESSAGES})

        self.assertEqual(status, 429)
        self.assertEqual(body, error)

    def test__handle__wraps_non_json_body(self):
        self.http.add("POST", COMPLETIONS_PATH, "<html>Bad gateway</html>", status=502)

        status, body = self.chat({"messages": MESSAGES})

        self.assertEqual(status, 502)
        self.assertEqual(body, {"raw": "<html>Bad gateway</html>"})

    def test__handle__network_failure(self):
        status, body = self.chat({"messages": MESSAGES})

        self.assertEqual(status, 500)
        self.assertEqual(body["error"], "OpenAI proxy failed")
        self.assertEqual(body["detail"], "Connection error.")
        self.assertEqual(len(self.http.calls_to("POST", COMPLETIONS_PATH)), 1)

    def test__handle__messages_required(self):
        for request_body in [{"messages": "Hola"}, {}, "not json"]:
            with self.subTest(body=request_body):
                status, body = self.chat(request_body)
                self.assertEqual(status, 400)
                self.assertEqual(body, {"error": "Invalid request: messages[] required"})
        self.assertEqual(self.http.calls, [])

    def test__handle__missing_api_key(self):
        self.set_openai_env(" ")

        status, body = self.chat({"messages": MESSAGES})

        self.assertEqual(status, 500)
        self.assertEqual(body, {"error": "OPENAI_API_KEY not configured"})
