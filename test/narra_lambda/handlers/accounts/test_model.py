from test.base import BaseTest

from narra_lambda.common.api.errors import RequestValidationError
from narra_lambda.handlers.accounts.model import (
    GiftLaterActivateRequest,
    SendEmailRequest,
    normalize_tags,
)


class NormalizeTagsTests(BaseTest):
    def test__normalize_tags__accepts_mixed_formats(self):
        self.assertListEqual(
            normalize_tags(
                [
                    "campaign:spring",
                    "vip",
                    {"name": "source", "value": "web"},
                    {"tier": "premium", "count": 3, "active": True},
                    "",
                    None,
                    ":orphan",
                ]
            ),
            [
                {"name": "campaign", "value": "spring"},
                {"name": "vip", "value": "true"},
                {"name": "source", "value": "web"},
                {"name": "tier", "value": "premium"},
                {"name": "count", "value": "3"},
                {"name": "active", "value": "true"},
                {"name": ":orphan", "value": "true"},
            ],
        )

    def test__normalize_tags__single_values(self):
        self.assertListEqual(normalize_tags("kind:welcome"), [{"name": "kind", "value": "welcome"}])
        self.assertListEqual(normalize_tags({"kind": None}), [{"name": "kind", "value": "true"}])
        self.assertListEqual(normalize_tags(None), [])
        self.assertListEqual(normalize_tags(42), [])


class SendEmailRequestTests(BaseTest):
    def test__from_payload__reads_from_alias(self):
        request = SendEmailRequest.from_payload(
            {"to": "a@example.com", "subject": "Hi", "html": "<p/>", "from": "Me <me@x.com>"}
        )

        self.assertEqual(request.from_, "Me <me@x.com>")
        self.assertEqual(request.to, ["a@example.com"])

    def test__resend_payload__falls_back_to_defaults(self):
        request = SendEmailRequest.from_payload(
            {"to": "a@example.com", "subject": "Hi", "html": "<p/>", "text": "  "}
        )

        self.assertDictEqual(
            request.resend_payload("Narra <hola@narra.mx>", None),
            {
                "from": "Narra <hola@narra.mx>",
                "to": ["a@example.com"],
                "subject": "Hi",
                "html": "<p/>",
            },
        )


class GiftLaterActivateRequestTests(BaseTest):
    def test__from_payload__normalizes_optional_fields(self):
        request = GiftLaterActivateRequest.from_payload(
            {
                "token": " t ",
                "authorEmail": " Ana@Example.com ",
                "authorName": " Ana ",
                "buyerName": "  ",
                "giftMessage": None,
            }
        )

        self.assertEqual(request.token, "t")
        self.assertEqual(request.author_email, "ana@example.com")
        self.assertEqual(request.author_name, "Ana")
        self.assertIsNone(request.buyer_name)
        self.assertIsNone(request.gift_message)

    def test__from_payload__requires_valid_recipient_email(self):
        with self.assertRaises(RequestValidationError) as context:
            GiftLaterActivateRequest.from_payload(
                {"token": "t", "authorEmail": "ana", "authorName": "Ana"}
            )

        self.assertEqual(context.exception.message, "Email válido del destinatario es requerido")
