from test.narra_lambda.base import LambdaHandlerTestCase, LambdaHandlerType, api_event

from narra_lambda.handlers.payments.verify_session import (
    ACCOUNT_EXISTS_MESSAGE,
    CheckoutPurchase,
    StripeVerifySessionHandler,
)

SESSION_PATH = "/v1/checkout/sessions/cs_1"
PURCHASES_PATH = "/rest/v1/gift_purchases"
TOKENS_PATH = "/rest/v1/gift_management_tokens"


def paid_session(**metadata):
    return {
        "id": "cs_1",
        "payment_status": "paid",
        "payment_intent": "pi_1",
        "metadata": {"session_token": "st", **metadata},
    }


class CheckoutPurchaseTests(LambdaHandlerTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return StripeVerifySessionHandler.get_handler()

    def test__from_session__defaults(self):
        purchase = CheckoutPurchase.from_session({"id": "cs_1"})

        self.assertEqual(purchase.purchase_type, "self")
        self.assertEqual(purchase.gift_timing, "now")
        self.assertIsNone(purchase.payment_intent)
        self.assertFalse(purchase.is_gift_later)

    def test__from_session__gift_later(self):
        purchase = CheckoutPurchase.from_session(
            paid_session(purchase_type="gift", gift_timing="later", buyer_email="b@x.com")
        )

        self.assertTrue(purchase.is_gift)
        self.assertTrue(purchase.is_gift_later)
        self.assertEqual(purchase.buyer_email, "b@x.com")


class StripeVerifySessionHandlerTests(LambdaHandlerTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return StripeVerifySessionHandler.get_handler()

    def setUp(self) -> None:
        super().setUp()
        self.set_stripe_env()
        self.set_supabase_env()
        self.set_resend_env()

    def verify(self, session_id="cs_1"):
        return self.invoke_json(
            api_event("/api/stripe-verify-session", body={"sessionId": session_id})
        )

    def add_account_creation(self, profile_status: int = 201):
        self.add_auth_users()
        self.http.add("POST", "/auth/v1/admin/users", {"id": "new-user"})
        self.http.add("POST", "/rest/v1/users", None, status=profile_status)
        self.http.add("POST", "/rest/v1/user_settings", None, status=201)
        self.http.add("POST", TOKENS_PATH, None, status=201)
        self.http.add("POST", PURCHASES_PATH, None, status=201)
        self.http.add(
            "POST",
            "/auth/v1/admin/generate_link",
            {"action_link": "https://project.supabase.co/auth/v1/verify?token=t&redirect_to=https://narra.mx/app"},
        )
        self.add_resend()

    def test__handle__self_purchase_creates_account(self):
        self.http.add(
            "GET",
            SESSION_PATH,
            paid_session(purchase_type="self", author_email="ana@x.com", author_name="Ana"),
        )
        self.http.add("GET", PURCHASES_PATH, [])
        self.add_account_creation()

        status, body = self.verify()

        self.assertEqual(status, 200)
        self.assertEqual(body["type"], "self")
        self.assertEqual(body["userId"], "new-user")
        management_token = body["managementToken"]
        self.assertEqual(len(management_token), 64)

        (processed_check,) = self.http.calls_to("GET", PURCHASES_PATH)
        self.assertEqual(processed_check.params["stripe_session_id"], "eq.cs_1")
        (create_user,) = self.http.calls_to("POST", "/auth/v1/admin/users")
        self.assertEqual(create_user.json["user_metadata"]["stripe_session_id"], "cs_1")
        (token_row,) = self.http.calls_to("POST", TOKENS_PATH)
        self.assertEqual(
            token_row.json,
            {
                "author_user_id": "new-user",
                "buyer_email": "ana@x.com",
                "management_token": management_token,
            },
        )
        (purchase_row,) = self.http.calls_to("POST", PURCHASES_PATH)
        self.assertEqual(purchase_row.json["purchase_type"], "self")
        self.assertEqual(purchase_row.json["stripe_payment_intent"], "pi_1")
        self.assertIsNone(purchase_row.json["buyer_email"])

        (email,) = self.http.emails()
        self.assertEqual(email["to"], ["ana@x.com"])
        self.assertIn(
            f"https://narra.mx/gift-management?token={management_token}", email["html"]
        )

    def test__handle__gift_now_notifies_author_and_buyer(self):
        self.http.add(
            "GET",
            SESSION_PATH,
            paid_session(
                purchase_type="gift",
                gift_timing="now",
                author_email="ana@x.com",
                author_name="Ana",
                buyer_email="beto@x.com",
                buyer_name="Beto",
                gift_message="Feliz cumpleaños",
            ),
        )
        self.http.add("GET", PURCHASES_PATH, [])
        self.add_account_creation()

        status, body = self.verify()

        self.assertEqual(status, 200)
        self.assertEqual(body["type"], "gift")
        (token_row,) = self.http.calls_to("POST", TOKENS_PATH)
        self.assertEqual(token_row.json["buyer_email"], "beto@x.com")
        (purchase_row,) = self.http.calls_to("POST", PURCHASES_PATH)
        self.assertEqual(purchase_row.json["purchase_type"], "gift_now")
        self.assertEqual(purchase_row.json["gift_message"], "Feliz cumpleaños")

        author_email, buyer_email = self.http.emails()
        self.assertEqual(author_email["to"], ["ana@x.com"])
        self.assertIn("Beto", author_email["html"])
        self.assertEqual(buyer_email["to"], ["beto@x.com"])
        self.assertEqual(self.http.email_tags(), ["purchase-gift-author", "purchase-gift-buyer"])

    def test__handle__profile_failure_is_not_fatal(self):
        self.http.add(
            "GET",
            SESSION_PATH,
            paid_session(purchase_type="self", author_email="ana@x.com", author_name="Ana"),
        )
        self.http.add("GET", PURCHASES_PATH, [])
        self.add_account_creation(profile_status=500)

        status, body = self.verify()

        self.assertEqual(status, 200)
        self.assertEqual(body["userId"], "new-user")

    def test__handle__gift_later_records_pending_purchase(self):
        self.http.add(
            "GET",
            SESSION_PATH,
            paid_session(purchase_type="gift", gift_timing="later", buyer_email="beto@x.com"),
        )
        self.http.add("GET", PURCHASES_PATH, [])
        self.http.add("POST", PURCHASES_PATH, None, status=201)
        self.add_resend()

        status, body = self.verify()

        self.assertEqual(status, 200)
        self.assertEqual(
            body, {"success": True, "type": "gift_later", "message": "Gift ready for activation"}
        )
        (insert,) = self.http.calls_to("POST", PURCHASES_PATH)
        self.assertEqual(insert.json["purchase_type"], "gift_later")
        self.assertEqual(insert.json["stripe_session_id"], "cs_1")
        self.assertFalse(insert.json["token_used"])
        (email,) = self.http.emails()
        self.assertEqual(email["to"], ["beto@x.com"])
        self.assertIn(
            f"https://narra.mx/gift-activation?token={insert.json['activation_token']}",
            email["html"],
        )
        self.assertEqual(self.http.email_tags(), ["gift-later-paid"])
        self.assertEqual(self.http.calls_to("POST", "/auth/v1/admin/users"), [])

    def test__handle__already_processed(self):
        self.http.add("GET", SESSION_PATH, paid_session(author_email="ana@x.com"))
        self.http.add("GET", PURCHASES_PATH, [{"id": "p1"}])

        status, body = self.verify()

        self.assertEqual(status, 200)
        self.assertEqual(
            body,
            {"success": True, "alreadyProcessed": True, "message": "Payment was already processed"},
        )
        self.assertEqual(self.http.calls_to("POST", "/auth/v1/admin/users"), [])

    def test__handle__session_without_token_skips_processed_check(self):
        session = paid_session(purchase_type="gift", gift_timing="later", buyer_email="b@x.com")
        del session["metadata"]["session_token"]
        self.http.add("GET", SESSION_PATH, session)
        self.http.add("POST", PURCHASES_PATH, None, status=201)
        self.add_resend()

        status, _ = self.verify()

        self.assertEqual(status, 200)
        self.assertEqual(self.http.calls_to("GET", PURCHASES_PATH), [])

    def test__handle__account_already_exists(self):
        self.http.add("GET", SESSION_PATH, paid_session(author_email="ana@x.com"))
        self.http.add("GET", PURCHASES_PATH, [])
        self.add_auth_users({"id": "u1", "email": "ana@x.com"})

        status, body = self.verify()

        self.assertEqual(status, 400)
        self.assertEqual(body, {"error": ACCOUNT_EXISTS_MESSAGE, "alreadyExists": True})

    def test__handle__unpaid_session(self):
        self.http.add("GET", SESSION_PATH, {**paid_session(), "payment_status": "unpaid"})

        status, body = self.verify()

        self.assertEqual(status, 400)
        self.assertEqual(body, {"error": "Payment not completed", "status": "unpaid"})

    def test__handle__unknown_session(self):
        self.http.add("GET", SESSION_PATH, {"error": {"message": "No such session"}}, status=404)

        status, body = self.verify()

        self.assertEqual(status, 400)
        self.assertEqual(body, {"error": "Invalid session"})

    def test__handle__missing_session_id(self):
        status, body = self.invoke_json(api_event("/api/stripe-verify-session", body={}))

        self.assertEqual(status, 400)
        self.assertEqual(body, {"error": "Session ID is required"})

    def test__handle__account_creation_failure(self):
        self.http.add("GET", SESSION_PATH, paid_session(author_email="ana@x.com"))
        self.http.add("GET", PURCHASES_PATH, [])
        self.add_auth_users()
        self.http.add("POST", "/auth/v1/admin/users", {"msg": "boom"}, status=500)

        status, body = self.verify()

        self.assertEqual(status, 500)
        self.assertEqual(body, {"error": "Failed to create account"})
