from test.base import BaseTest
from test.narra_lambda.base import LambdaHandlerTestCase, LambdaHandlerType, api_event

from narra_lambda.handlers.feedback.model import to_boolean
from narra_lambda.handlers.feedback.story_feedback import StoryFeedbackHandler, build_comment_tree

SUBSCRIBERS_PATH = "/rest/v1/subscribers"
COMMENTS_PATH = "/rest/v1/story_comments"
REACTIONS_PATH = "/rest/v1/story_reactions"

CREDENTIALS = {"authorId": "a1", "subscriberId": "s1", "storyId": "st1", "token": "tok"}
SUBSCRIBER = {"id": "s1", "name": "Luis", "status": "confirmed", "access_token": "tok"}


def comment_row(comment_id, subscriber_id="s1", parent=None, content="Hola"):
    return {
        "id": comment_id,
        "story_id": "st1",
        "subscriber_id": subscriber_id,
        "parent_comment_id": parent,
        "content": content,
        "created_at": "2024-05-01T00:00:00Z",
    }


class BuildCommentTreeTests(BaseTest):
    def test__build_comment_tree__nests_replies_and_keeps_order(self):
        rows = [
            comment_row("c3", subscriber_id="s2", parent="c1"),
            comment_row("c2"),
            comment_row("c1"),
            comment_row("c4", parent="missing"),
        ]

        tree = build_comment_tree(rows, {"s1": "Luis"})

        self.assertEqual([node["id"] for node in tree], ["c2", "c1", "c4"])
        (reply,) = tree[1]["replies"]
        self.assertEqual(reply["id"], "c3")
        self.assertEqual(reply["subscriberName"], "Lector")
        self.assertEqual(reply["parentCommentId"], "c1")
        self.assertEqual(tree[0]["subscriberName"], "Luis")
        self.assertEqual(tree[2]["replies"], [])

    def test__build_comment_tree__empty(self):
        self.assertEqual(build_comment_tree([], {}), [])


class ToBooleanTests(BaseTest):
    def test__to_boolean__loose_values(self):
        for value, expected in [
            (True, True),
            ("yes", True),
            (" 1 ", True),
            ("FALSE", False),
            ("no", False),
            (0, False),
            (2.5, True),
            (None, False),
            ("maybe", True),
        ]:
            with self.subTest(value=value):
                self.assertIs(to_boolean(value), expected)


class StoryFeedbackHandlerTests(LambdaHandlerTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return StoryFeedbackHandler.get_handler()

    def setUp(self) -> None:
        super().setUp()
        self.set_supabase_anon_env()

    def add_subscriber(self, subscriber=SUBSCRIBER):
        self.http.add(
            "GET",
            SUBSCRIBERS_PATH,
            [subscriber] if subscriber else [],
            params={"user_id": "eq.a1"},
        )

    def post(self, **body):
        return self.invoke_json(
            api_event("/api/story-feedback", body={**CREDENTIALS, **body})
        )

    def test__handle__get_fetches_feedback(self):
        self.add_subscriber()
        self.http.add(
            "GET",
            COMMENTS_PATH,
            [
                comment_row("c2", subscriber_id="s2", parent="c1"),
                comment_row("c1"),
            ],
        )
        self.http.add("GET", REACTIONS_PATH, [{"id": "r1"}, {"id": "r2"}])
        self.http.add("GET", REACTIONS_PATH, [{"id": "r1"}], params={"subscriber_id": "eq.s1"})
        self.http.add(
            "GET",
            SUBSCRIBERS_PATH,
            [{"id": "s1", "name": "Luis"}, {"id": "s2", "name": "Marta"}],
            params={"id": "in.(s1,s2)"},
        )

        status, body = self.invoke_json(
            api_event("/api/story-feedback", method="GET", query=CREDENTIALS)
        )

        self.assertEqual(status, 200)
        self.assertTrue(body["success"])
        self.assertEqual(body["commentCount"], 2)
        self.assertEqual(body["reactionCount"], 2)
        self.assertTrue(body["hasReacted"])
        (root,) = body["comments"]
        self.assertEqual(root["subscriberName"], "Luis")
        self.assertEqual(root["replies"][0]["subscriberName"], "Marta")

        (verify,) = [c for c in self.http.calls_to("GET", SUBSCRIBERS_PATH) if "user_id" in c.params]
        self.assertEqual(verify.params["id"], "eq.s1")
        (comments,) = self.http.calls_to("GET", COMMENTS_PATH)
        self.assertEqual(comments.params["order"], "created_at.desc")
        self.assertEqual(comments.headers["apikey"], self.SUPABASE_ANON_KEY)

    def test__handle__fetch_without_comments(self):
        self.add_subscriber()
        self.http.add("GET", COMMENTS_PATH, [])
        self.http.add("GET", REACTIONS_PATH, [])

        status, body = self.post(action="fetch")

        self.assertEqual(status, 200)
        self.assertEqual(
            body,
            {
                "success": True,
                "comments": [],
                "commentCount": 0,
                "hasReacted": False,
                "reactionCount": 0,
            },
        )

    def test__handle__fetch_reads_run_on_their_own_sessions(self):
        self.add_subscriber()
        self.http.add("GET", COMMENTS_PATH, [comment_row("c1")])
        self.http.add("GET", REACTIONS_PATH, [])
        self.http.add(
            "GET", SUBSCRIBERS_PATH, [{"id": "s1", "name": "Luis"}], params={"id": "in.(s1)"}
        )

        status, _ = self.post(action="fetch")

        self.assertEqual(status, 200)
        verify, names = self.http.calls_to("GET", SUBSCRIBERS_PATH)
        self.assertIs(names.session, verify.session)
        worker_calls = self.http.calls_to("GET", COMMENTS_PATH) + self.http.calls_to(
            "GET", REACTIONS_PATH
        )
        self.assertEqual(len(worker_calls), 3)
        for call in worker_calls:
            self.assertIsNotNone(call.session)
            self.assertIsNot(call.session, verify.session)

    def test__handle__adds_comment(self):
        self.add_subscriber()
        self.http.add(
            "POST", COMMENTS_PATH, [comment_row("c9", parent="c1", content="Gracias")], status=201
        )

        status, body = self.post(action="Comment", content="  Gracias  ", parentCommentId="c1")

        self.assertEqual(status, 200)
        self.assertEqual(body["comment"]["id"], "c9")
        self.assertEqual(body["comment"]["subscriberName"], "Luis")
        self.assertEqual(body["comment"]["replies"], [])
        (insert,) = self.http.calls_to("POST", COMMENTS_PATH)
        self.assertEqual(
            insert.json,
            {
                "story_id": "st1",
                "author_id": "a1",
                "subscriber_id": "s1",
                "parent_comment_id": "c1",
                "content": "Gracias",
                "source": None,
            },
        )

    def test__handle__comment_requires_content(self):
        self.add_subscriber()

        status, body = self.post(action="comment", content="   ")

        self.assertEqual(status, 400)
        self.assertEqual(body["code"], "content_required")

    def test__handle__adds_reaction(self):
        self.add_subscriber()
        self.http.add("POST", REACTIONS_PATH, None, status=201)
        self.http.add("GET", REACTIONS_PATH, [{"id": "r1"}])

        status, body = self.post(action="reaction", reactionType="unknown", active="true")

        self.assertEqual(status, 200)
        self.assertEqual(
            body,
            {"success": True, "hasReacted": True, "reactionType": "heart", "reactionCount": 1},
        )
        (insert,) = self.http.calls_to("POST", REACTIONS_PATH)
        self.assertEqual(insert.json["reaction_type"], "heart")
        self.assertEqual(
            insert.headers["Prefer"], "return=minimal,resolution=ignore-duplicates"
        )

    def test__handle__removes_reaction(self):
        self.add_subscriber()
        self.http.add("DELETE", REACTIONS_PATH, [{"id": "r1"}])
        self.http.add("GET", REACTIONS_PATH, [])

        status, body = self.post(action="reaction", enabled=False)

        self.assertEqual(status, 200)
        self.assertFalse(body["hasReacted"])
        self.assertEqual(body["reactionCount"], 0)
        (delete,) = self.http.calls_to("DELETE", REACTIONS_PATH)
        self.assertEqual(
            delete.params,
            {"story_id": "eq.st1", "subscriber_id": "eq.s1", "reaction_type": "eq.heart"},
        )

    def test__handle__unknown_subscriber(self):
        self.add_subscriber(None)

        status, body = self.post(action="fetch")

        self.assertEqual(status, 404)
        self.assertEqual(body["code"], "subscriber_not_found")

    def test__handle__inactive_subscriber(self):
        self.add_subscriber({**SUBSCRIBER, "status": "Unsubscribed"})

        status, body = self.post(action="fetch")

        self.assertEqual(status, 403)
        self.assertEqual(body["code"], "subscriber_inactive")

    def test__handle__token_mismatch(self):
        self.add_subscriber({**SUBSCRIBER, "access_token": "other"})

        status, body = self.post(action="fetch")

        self.assertEqual(status, 403)
        self.assertEqual(body, {"error": "El enlace ya no es válido.", "code": "invalid_token"})

    def test__handle__unsupported_action(self):
        self.add_subscriber()

        status, body = self.post(action="share")

        self.assertEqual(status, 400)
        self.assertEqual(body["code"], "unsupported_action")

    def test__handle__missing_credentials(self):
        status, body = self.invoke_json(
            api_event("/api/story-feedback", body={"action": "fetch", "authorId": "a1"})
        )

        self.assertEqual(status, 400)
        self.assertEqual(
            body, {"error": "authorId, subscriberId, storyId and token are required"}
        )

    def test__handle__database_failure(self):
        self.add_subscriber()
        self.http.add("GET", COMMENTS_PATH, {"message": "down"}, status=500)
        self.http.add("GET", REACTIONS_PATH, [])

        status, body = self.post(action="fetch")

        self.assertEqual(status, 500)
        self.assertEqual(body, {"error": "No se pudo procesar esta solicitud."})

    def test__handle__missing_configuration(self):
        self.set_env_vars(("SUPABASE_URL", " "))

        status, body = self.post(action="fetch")

        self.assertEqual(status, 500)
        self.assertEqual(body, {"error": "Supabase credentials not configured"})
