from test.narra_lambda.base import LambdaHandlerTestCase, LambdaHandlerType, api_event

from narra_lambda.handlers.accounts.contact import ContactHandler

CONTACT_PATH = "/rest/v1/contact_messages"
VALID_BODY = {
    "name": "  Ana  ",
    "email": "ana@example.com",
    "message": "Me gustaría saber más sobre Narra.",
    "isCurrentClient": True,
}


class ContactHandlerTests(LambdaHandlerTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return ContactHandler.get_handler()

    def contact(self, body):
        return self.invoke_json(api_event("/api/contact", body=body))

    def test__handle__stores_message(self):
        self.set_supabase_env()
        self.http.add("POST", CONTACT_PATH, None, status=201)

        status, body = self.contact(VALID_BODY)

        self.assertEqual(status, 200)
        self.assertEqual(body, {"success": True})
        (insert,) = self.http.calls_to("POST", CONTACT_PATH)
        self.assertEqual(
            insert.json,
            {
                "name": "Ana",
                "email": "ana@example.com",
                "message": "Me gustaría saber más sobre Narra.",
                "is_current_client": True,
            },
        )
        self.assertEqual(insert.headers["Prefer"], "return=minimal")

    def test__handle__long_fields_are_clipped(self):
        self.set_supabase_env()
        self.http.add("POST", CONTACT_PATH, None, status=201)

        status, _ = self.contact({**VALID_BODY, "name": "a" * 300, "message": "m" * 6000})

        self.assertEqual(status, 200)
        (insert,) = self.http.calls_to("POST", CONTACT_PATH)
        self.assertEqual(len(insert.json["name"]), 200)
        self.assertEqual(len(insert.json["message"]), 5000)

    def test__handle__validation_codes(self):
        self.set_supabase_env()
        cases = [
            ({**VALID_BODY, "name": "   "}, "name_required"),
            ({**VALID_BODY, "name": 42}, "name_required"),
            ({**VALID_BODY, "email": ""}, "email_required"),
            ({**VALID_BODY, "email": "ana@"}, "invalid_email"),
            ({**VALID_BODY, "message": "corto"}, "message_too_short"),
        ]
        for request_body, code in cases:
            with self.subTest(code=code, body=request_body):
                status, body = self.contact(request_body)
                self.assertEqual(status, 400)
                self.assertEqual(body, {"error": code})

    def test__handle__invalid_body(self):
        self.set_supabase_env()
        status, body = self.contact("no es json")

        self.assertEqual(status, 400)
        self.assertEqual(body, {"error": "invalid_body"})

    def test__handle__configuration_checked_before_validation(self):
        status, body = self.contact({**VALID_BODY, "email": "nope"})

        self.assertEqual(status, 500)
        self.assertEqual(body, {"error": "configuration_error"})
        self.assertEqual(self.http.calls, [])

    def test__handle__anon_key_is_not_enough(self):
        self.set_supabase_anon_env()

        status, body = self.contact(VALID_BODY)

        self.assertEqual(status, 500)
        self.assertEqual(body, {"error": "configuration_error"})
        self.assertEqual(self.http.calls, [])

    def test__handle__missing_configuration(self):
        status, body = self.contact(VALID_BODY)

        self.assertEqual(status, 500)
        self.assertEqual(body, {"error": "configuration_error"})
        self.assertEqual(self.http.calls, [])

    def test__handle__database_error(self):
        self.set_supabase_env()
        self.http.add("POST", CONTACT_PATH, {"message": "duplicate"}, status=409)

        status, body = self.contact(VALID_BODY)

        self.assertEqual(status, 500)
        self.assertEqual(body, {"error": "database_error"})
