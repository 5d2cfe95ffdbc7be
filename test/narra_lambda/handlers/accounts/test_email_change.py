from test.narra_lambda.base import LambdaHandlerTestCase, LambdaHandlerType, api_event

from narra_lambda.handlers.accounts.email_change import (
    EMAIL_TAKEN_MESSAGE,
    EmailChangeConfirmHandler,
    EmailChangeRequestHandler,
    EmailChangeRevertHandler,
)

REQUESTS_PATH = "/rest/v1/email_change_requests"
AUTH_HEADERS = {"Authorization": "Bearer session-token"}
CURRENT_USER = {"id": "u1", "email": "Old@Example.com"}


class EmailChangeTestCase(LambdaHandlerTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.set_supabase_env()
        self.set_resend_env()


class EmailChangeRequestHandlerTests(EmailChangeTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return EmailChangeRequestHandler.get_handler()

    def request_change(self, new_email="new@example.com", headers=AUTH_HEADERS):
        return self.invoke_json(
            api_event("/api/email-change-request", body={"newEmail": new_email}, headers=headers)
        )

    def test__handle__opens_request_and_emails_both_addresses(self):
        self.add_user_from_token(CURRENT_USER)
        self.add_auth_users()
        self.http.add("PATCH", REQUESTS_PATH, None, status=204)
        self.http.add("POST", REQUESTS_PATH, [{"id": "r1"}], status=201)
        self.add_resend()

        status, body = self.request_change()

        self.assertEqual(status, 200)
        self.assertTrue(body["success"])

        (user_lookup,) = self.http.calls_to("GET", "/auth/v1/user")
        self.assertEqual(user_lookup.headers["Authorization"], "Bearer session-token")
        (cancel,) = self.http.calls_to("PATCH", REQUESTS_PATH)
        self.assertEqual(cancel.params, {"user_id": "eq.u1", "status": "eq.pending"})
        self.assertEqual(cancel.json["status"], "cancelled")

        (insert,) = self.http.calls_to("POST", REQUESTS_PATH)
        self.assertEqual(insert.json["old_email"], "Old@Example.com")
        self.assertEqual(insert.json["new_email"], "new@example.com")
        self.assertEqual(insert.json["status"], "pending")
        self.assertNotEqual(insert.json["confirmation_token"], insert.json["revert_token"])

        old_address, new_address = self.http.emails()
        self.assertEqual(old_address["to"], ["Old@Example.com"])
        self.assertIn(
            f"https://narra.mx/app/email-change-revert?token={insert.json['revert_token']}",
            old_address["html"],
        )
        self.assertEqual(new_address["to"], ["new@example.com"])
        self.assertIn(
            "https://narra.mx/app/email-change-confirm?token="
            f"{insert.json['confirmation_token']}",
            new_address["html"],
        )

    def test__handle__same_email(self):
        self.add_user_from_token(CURRENT_USER)

        status, body = self.request_change("old@example.com")

        self.assertEqual(status, 400)
        self.assertEqual(body, {"error": "El nuevo email es igual al actual"})

    def test__handle__email_taken(self):
        self.add_user_from_token(CURRENT_USER)
        self.add_auth_users({"id": "u2", "email": "new@example.com"})

        status, body = self.request_change()

        self.assertEqual(status, 400)
        self.assertEqual(body, {"error": EMAIL_TAKEN_MESSAGE})
        self.assertEqual(self.http.calls_to("POST", REQUESTS_PATH), [])

    def test__handle__confirmation_email_is_required(self):
        self.add_user_from_token(CURRENT_USER)
        self.add_auth_users()
        self.http.add("PATCH", REQUESTS_PATH, None, status=204)
        self.http.add("POST", REQUESTS_PATH, [{"id": "r1"}], status=201)
        self.add_resend()
        self.add_resend(status=500)

        status, body = self.request_change()

        self.assertEqual(status, 500)
        self.assertEqual(body, {"error": "Error al enviar email de confirmación"})

    def test__handle__missing_bearer_token(self):
        status, body = self.request_change(headers=None)

        self.assertEqual(status, 401)
        self.assertEqual(body, {"error": "No autorizado"})
        self.assertEqual(self.http.calls, [])

    def test__handle__rejected_bearer_token(self):
        self.add_user_from_token(None)

        status, body = self.request_change()

        self.assertEqual(status, 401)
        self.assertEqual(body, {"error": "No autorizado"})


class EmailChangeConfirmHandlerTests(EmailChangeTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return EmailChangeConfirmHandler.get_handler()

    def confirm(self, token="confirm-1"):
        return self.invoke_json(
            api_event("/api/email-change-confirm", method="GET", query={"token": token})
        )

    def add_change_request(self, status="pending"):
        self.http.add(
            "GET",
            REQUESTS_PATH,
            [{"id": "r1", "user_id": "u1", "new_email": "new@example.com", "status": status}],
        )

    def test__handle__confirms_change(self):
        self.add_change_request()
        self.add_auth_users()
        self.http.add("PUT", "/auth/v1/admin/users/u1", {"id": "u1"})
        self.http.add("PATCH", REQUESTS_PATH, None, status=204)

        status, body = self.confirm()

        self.assertEqual(status, 200)
        self.assertTrue(body["success"])
        self.assertEqual(body["newEmail"], "new@example.com")
        (lookup,) = self.http.calls_to("GET", REQUESTS_PATH)
        self.assertEqual(lookup.params["confirmation_token"], "eq.confirm-1")
        (update,) = self.http.calls_to("PUT", "/auth/v1/admin/users/u1")
        self.assertEqual(update.json, {"email": "new@example.com", "email_confirm": True})
        (mark,) = self.http.calls_to("PATCH", REQUESTS_PATH)
        self.assertEqual(mark.params, {"id": "eq.r1"})
        self.assertEqual(mark.json["status"], "confirmed")
        self.assertIn("confirmed_at", mark.json)

    def test__handle__accepts_post(self):
        self.add_change_request(status="confirmed")

        status, body = self.invoke_json(
            api_event("/api/email-change-confirm", body={"token": "confirm-1"})
        )

        self.assertEqual(status, 400)
        self.assertEqual(body, {"error": "Esta solicitud ya fue confirmada."})

    def test__handle__cancelled_request(self):
        self.add_change_request(status="cancelled")

        status, body = self.confirm()

        self.assertEqual(status, 400)
        self.assertEqual(body, {"error": "Esta solicitud ya fue cancelada."})

    def test__handle__unknown_token(self):
        self.http.add("GET", REQUESTS_PATH, [])

        status, body = self.confirm()

        self.assertEqual(status, 404)
        self.assertEqual(body, {"error": "Solicitud no encontrada o inválida"})

    def test__handle__email_taken_cancels_request(self):
        self.add_change_request()
        self.add_auth_users({"id": "u2", "email": "new@example.com"})
        self.http.add("PATCH", REQUESTS_PATH, None, status=204)

        status, body = self.confirm()

        self.assertEqual(status, 400)
        self.assertIn("La solicitud ha sido cancelada", body["error"])
        (mark,) = self.http.calls_to("PATCH", REQUESTS_PATH)
        self.assertEqual(mark.json["status"], "cancelled")
        self.assertEqual(self.http.calls_to("PUT", "/auth/v1/admin/users/u1"), [])


class EmailChangeRevertHandlerTests(EmailChangeTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return EmailChangeRevertHandler.get_handler()

    def revert(self):
        return self.invoke_json(
            api_event("/api/email-change-revert", method="GET", query={"token": "revert-1"})
        )

    def add_change_request(self, status):
        self.http.add(
            "GET",
            REQUESTS_PATH,
            [{"id": "r1", "user_id": "u1", "old_email": "old@example.com", "status": status}],
        )
        self.http.add("PATCH", REQUESTS_PATH, None, status=204)

    def test__handle__reverts_confirmed_change(self):
        self.add_change_request("confirmed")
        self.http.add("PUT", "/auth/v1/admin/users/u1", {"id": "u1"})

        status, body = self.revert()

        self.assertEqual(status, 200)
        self.assertEqual(body["oldEmail"], "old@example.com")
        self.assertTrue(body["wasConfirmed"])
        self.assertIn("revertido exitosamente", body["message"])
        (update,) = self.http.calls_to("PUT", "/auth/v1/admin/users/u1")
        self.assertEqual(update.json, {"email": "old@example.com", "email_confirm": True})
        (mark,) = self.http.calls_to("PATCH", REQUESTS_PATH)
        self.assertEqual(mark.json["status"], "reverted")

    def test__handle__cancels_pending_change(self):
        self.add_change_request("pending")

        status, body = self.revert()

        self.assertEqual(status, 200)
        self.assertFalse(body["wasConfirmed"])
        self.assertIn("ha sido cancelada", body["message"])
        self.assertEqual(self.http.calls_to("PUT", "/auth/v1/admin/users/u1"), [])

    def test__handle__already_reverted(self):
        self.add_change_request("reverted")

        status, body = self.revert()

        self.assertEqual(status, 400)
        self.assertEqual(body, {"error": "Esta solicitud ya fue revertida anteriormente."})
