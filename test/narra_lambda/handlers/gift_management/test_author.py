from test.narra_lambda.base import LambdaHandlerTestCase, LambdaHandlerType, api_event

from narra_lambda.handlers.gift_management.author import (
    GiftManagementChangeEmailHandler,
    GiftManagementGetAuthorHandler,
    GiftManagementSendMagicLinkHandler,
)

TOKENS_PATH = "/rest/v1/gift_management_tokens"
TOKEN_ROW = {"id": "t1", "author_user_id": "u1", "buyer_email": "buyer@example.com"}


class GiftManagementTestCase(LambdaHandlerTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.set_supabase_env()
        self.set_resend_env()

    def add_token(self, row=TOKEN_ROW):
        self.http.add("GET", TOKENS_PATH, [row] if row else [])


class GiftManagementGetAuthorHandlerTests(GiftManagementTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return GiftManagementGetAuthorHandler.get_handler()

    def test__handle__returns_author_and_subscribers(self):
        self.add_token()
        self.http.add("PATCH", TOKENS_PATH, None, status=204)
        self.http.add(
            "GET",
            "/auth/v1/admin/users/u1",
            {"id": "u1", "email": "ana@example.com", "created_at": "2024-01-01T00:00:00Z"},
        )
        self.http.add("GET", "/rest/v1/user_settings", [{"public_author_name": " Ana G. "}])
        self.http.add(
            "GET",
            "/rest/v1/subscribers",
            [
                {
                    "id": "s1",
                    "name": "Luis",
                    "email": "luis@example.com",
                    "status": "confirmed",
                    "created_at": "2024-02-01T00:00:00Z",
                }
            ],
        )

        status, body = self.invoke_json(
            api_event("/api/gift-management-get-author", method="GET", query={"token": "abc"})
        )

        self.assertEqual(status, 200)
        self.assertEqual(
            body,
            {
                "success": True,
                "author": {
                    "id": "u1",
                    "email": "ana@example.com",
                    "name": "Ana G.",
                    "createdAt": "2024-01-01T00:00:00Z",
                },
                "buyerEmail": "buyer@example.com",
                "subscribers": [
                    {
                        "id": "s1",
                        "name": "Luis",
                        "email": "luis@example.com",
                        "status": "confirmed",
                        "addedAt": "2024-02-01T00:00:00Z",
                    }
                ],
            },
        )
        (token_lookup,) = self.http.calls_to("GET", TOKENS_PATH)
        self.assertEqual(token_lookup.params["management_token"], "eq.abc")
        (touch,) = self.http.calls_to("PATCH", TOKENS_PATH)
        self.assertEqual(touch.params, {"id": "eq.t1"})
        self.assertIn("last_used_at", touch.json)
        (subscribers,) = self.http.calls_to("GET", "/rest/v1/subscribers")
        self.assertEqual(subscribers.params["user_id"], "eq.u1")

    def test__handle__unknown_token_is_unauthorized(self):
        self.add_token(None)

        status, body = self.invoke_json(
            api_event("/api/gift-management-get-author", method="GET", query={"token": "abc"})
        )

        self.assertEqual(status, 401)
        self.assertEqual(body, {"error": "Token inválido o expirado"})

    def test__handle__missing_token(self):
        status, body = self.invoke_json(
            api_event("/api/gift-management-get-author", method="GET")
        )

        self.assertEqual(status, 400)
        self.assertEqual(body, {"error": "Token es requerido"})

    def test__handle__subscriber_listing_failure_is_tolerated(self):
        self.add_token()
        self.http.add("PATCH", TOKENS_PATH, None, status=500)
        self.http.add("GET", "/auth/v1/admin/users/u1", {"id": "u1", "email": "ana@example.com"})
        self.http.add("GET", "/rest/v1/user_settings", [])
        self.http.add("GET", "/rest/v1/subscribers", {"message": "boom"}, status=500)

        status, body = self.invoke_json(
            api_event("/api/gift-management-get-author", method="GET", query={"token": "abc"})
        )

        self.assertEqual(status, 200)
        self.assertEqual(body["author"]["name"], "ana")
        self.assertEqual(body["subscribers"], [])


class GiftManagementChangeEmailHandlerTests(GiftManagementTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return GiftManagementChangeEmailHandler.get_handler()

    def test__handle__updates_author_email(self):
        self.add_token()
        self.add_auth_users()
        self.http.add("PUT", "/auth/v1/admin/users/u1", {"id": "u1"})
        self.add_resend()

        status, body = self.invoke_json(
            api_event(
                "/api/gift-management-change-email",
                body={"token": "abc", "newEmail": "Nueva@Example.com"},
            )
        )

        self.assertEqual(status, 200)
        self.assertEqual(body, {"success": True, "message": "Email actualizado exitosamente"})
        (update,) = self.http.calls_to("PUT", "/auth/v1/admin/users/u1")
        self.assertEqual(update.json, {"email": "nueva@example.com", "email_confirm": True})
        (email,) = self.http.emails()
        self.assertEqual(email["to"], ["nueva@example.com"])

    def test__handle__email_taken_by_another_account(self):
        self.add_token()
        self.add_auth_users({"id": "u2", "email": "nueva@example.com"})

        status, body = self.invoke_json(
            api_event(
                "/api/gift-management-change-email",
                body={"token": "abc", "newEmail": "nueva@example.com"},
            )
        )

        self.assertEqual(status, 400)
        self.assertIn("ya está registrado", body["error"])
        self.assertEqual(self.http.calls_to("PUT", "/auth/v1/admin/users/u1"), [])

    def test__handle__notification_failure_does_not_fail(self):
        self.add_token()
        self.add_auth_users({"id": "u1", "email": "nueva@example.com"})
        self.http.add("PUT", "/auth/v1/admin/users/u1", {"id": "u1"})
        self.add_resend(status=500)

        status, body = self.invoke_json(
            api_event(
                "/api/gift-management-change-email",
                body={"token": "abc", "newEmail": "nueva@example.com"},
            )
        )

        self.assertEqual(status, 200)
        self.assertTrue(body["success"])


class GiftManagementSendMagicLinkHandlerTests(GiftManagementTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return GiftManagementSendMagicLinkHandler.get_handler()

    def test__handle__emails_login_link(self):
        self.add_token()
        self.http.add("GET", "/auth/v1/admin/users/u1", {"id": "u1", "email": "ana@example.com"})
        self.http.add(
            "POST", "/auth/v1/admin/generate_link", {"action_link": "https://narra.mx/#access=1"}
        )
        self.add_resend()

        status, body = self.invoke_json(
            api_event("/api/gift-management-send-magic-link", body={"token": "abc"})
        )

        self.assertEqual(status, 200)
        self.assertEqual(
            body, {"success": True, "message": "Enlace de acceso enviado exitosamente"}
        )
        (email,) = self.http.emails()
        self.assertEqual(email["to"], ["ana@example.com"])
        self.assertIn("https://narra.mx/app#access=1", email["html"])

    def test__handle__email_failure_is_error(self):
        self.add_token()
        self.http.add("GET", "/auth/v1/admin/users/u1", {"id": "u1", "email": "ana@example.com"})
        self.http.add(
            "POST", "/auth/v1/admin/generate_link", {"properties": {"action_link": "https://x"}}
        )
        self.add_resend(status=500)

        status, body = self.invoke_json(
            api_event("/api/gift-management-send-magic-link", body={"token": "abc"})
        )

        self.assertEqual(status, 500)
        self.assertEqual(body, {"error": "Error al enviar el email"})
