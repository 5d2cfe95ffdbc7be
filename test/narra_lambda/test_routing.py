from test.base import BaseTest
from test.narra_lambda.base import MockLambdaContext
from typing import Any, Dict

from narra_lambda.routing import APP_SHELL, BLOG_SHELL, EdgeRoutingHandler, resolve_rewrite


def origin_request_event(uri: str) -> Dict[str, Any]:
    return {
        "Records": [
            {
                "cf": {
                    "config": {"distributionId": "EDFDVBD6EXAMPLE", "eventType": "origin-request"},
                    "request": {
                        "clientIp": "203.0.113.178",
                        "method": "GET",
                        "querystring": "ref=email",
                        "uri": uri,
                        "headers": {"host": [{"key": "Host", "value": "narra.mx"}]},
                    },
                }
            }
        ]
    }


class ResolveRewriteTests(BaseTest):
    def test__resolve_rewrite__app_navigation(self):
        for path in ["/app", "/app/", "/app/settings", "/app/story/42/edit", "/app/index.html"]:
            with self.subTest(path=path):
                self.assertEqual(resolve_rewrite(path), APP_SHELL)

    def test__resolve_rewrite__blog_navigation(self):
        for path in ["/blog/u1", "/blog/u1/story/s1", "/blog/about.html"]:
            with self.subTest(path=path):
                self.assertEqual(resolve_rewrite(path), BLOG_SHELL)

    def test__resolve_rewrite__passes_through(self):
        for path in [
            "/",
            "/precios",
            "/app/main.dart.js",
            "/app/assets/logo.png",
            "/blog/assets/app.css",
            "/blog",
            "/apps/other",
            "/api/story-feedback",
        ]:
            with self.subTest(path=path):
                self.assertIsNone(resolve_rewrite(path))


class EdgeRoutingHandlerTests(BaseTest):
    def setUp(self) -> None:
        super().setUp()
        self.handler = EdgeRoutingHandler.get_handler()
        self.context = MockLambdaContext("edge-routing")

    def test__handle__rewrites_uri_only(self):
        event = origin_request_event("/app/settings")

        response = self.handler(event, self.context)

        expected = dict(event["Records"][0]["cf"]["request"])
        expected["uri"] = APP_SHELL
        self.assertDictEqual(response, expected)

    def test__handle__returns_request_unchanged(self):
        event = origin_request_event("/app/flutter.js")

        response = self.handler(event, self.context)

        self.assertDictEqual(response, event["Records"][0]["cf"]["request"])
