"""Comments and reactions left by subscribers on published stories."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from narra_lambda.clients.supabase import eq, in_
from narra_lambda.common.api.errors import (
    ForbiddenError,
    NotFoundError,
    RequestValidationError,
)
from narra_lambda.handlers.base import NarraApiHandler
from narra_lambda.handlers.feedback.model import StoryFeedbackRequest

SUBSCRIBERS_TABLE = "subscribers"
COMMENTS_TABLE = "story_comments"
REACTIONS_TABLE = "story_reactions"

INACTIVE_SUBSCRIBER_STATUSES = frozenset(["unsubscribed", "inactive", "revoked"])
DEFAULT_SUBSCRIBER_NAME = "Lector"
FAILURE_MESSAGE = "No se pudo procesar esta solicitud."


def comment_node(row: Dict[str, Any], subscriber_names: Dict[str, str]) -> Dict[str, Any]:
    subscriber_id = row.get("subscriber_id")
    return {
        "id": row.get("id"),
        "storyId": row.get("story_id"),
        "parentCommentId": row.get("parent_comment_id"),
        "subscriberId": subscriber_id,
        "subscriberName": subscriber_names.get(subscriber_id) or DEFAULT_SUBSCRIBER_NAME,
        "content": row.get("content"),
        "createdAt": row.get("created_at"),
        "replies": [],
    }


def build_comment_tree(
    rows: List[Dict[str, Any]], subscriber_names: Dict[str, str]
) -> List[Dict[str, Any]]:
    """Nest replies under their parent comment.

    Rows are expected newest first and keep that order at every level. A reply whose
    parent is missing is shown at the top level.
    """
    nodes = {row.get("id"): comment_node(row, subscriber_names) for row in rows}
    roots: List[Dict[str, Any]] = []
    for node in nodes.values():
        parent = nodes.get(node["parentCommentId"]) if node["parentCommentId"] else None
        if parent is not None and parent is not node:
            parent["replies"].append(node)
        else:
            roots.append(node)
    return roots


@dataclass
class StoryFeedbackHandler(NarraApiHandler[StoryFeedbackRequest]):
    """Read or write the feedback of a subscriber on one story.

    Actions:

    * `fetch`: comment tree, comment count, reaction count and whether this subscriber
      reacted. `GET` requests default to this action.
    * `comment`: add a comment, optionally replying to `parentCommentId`.
    * `reaction`: add (`active` true) or remove (`active` false) the subscriber's reaction.

    The subscriber must exist for the author, be active and present its access token
    before any action runs.
    """

    supabase_config_message = "Supabase credentials not configured"
    supabase_allow_anon = True

    @classmethod
    def route_name(cls) -> str:
        return "story-feedback"

    @classmethod
    def route_methods(cls) -> List[str]:
        return ["GET", "POST"]

    def request_payload(self) -> Dict[str, Any]:
        payload = super().request_payload()
        if (self.current_event.http_method or "").upper() == "GET":
            payload.setdefault("action", "fetch")
        return payload

    def handle(self, request: StoryFeedbackRequest) -> Dict[str, Any]:
        subscriber = self.verify_subscriber(request)
        self.log.info(
            f"Feedback '{request.action}' on story {request.story_id} by {request.subscriber_id}"
        )
        if request.action == "fetch":
            return self.fetch_feedback(request)
        if request.action == "comment":
            return self.add_comment(request, subscriber)
        if request.action == "reaction":
            return self.toggle_reaction(request)
        raise RequestValidationError("No podemos procesar esta acción.", code="unsupported_action")

    def verify_subscriber(self, request: StoryFeedbackRequest) -> Dict[str, Any]:
        subscriber = self.supabase.select_one(
            SUBSCRIBERS_TABLE,
            {"id": eq(request.subscriber_id), "user_id": eq(request.author_id)},
            columns="id,name,status,access_token",
            error_message=FAILURE_MESSAGE,
        )
        if subscriber is None:
            raise NotFoundError("No encontramos este suscriptor.", code="subscriber_not_found")
        if (subscriber.get("status") or "").lower() in INACTIVE_SUBSCRIBER_STATUSES:
            raise ForbiddenError("Este suscriptor canceló su acceso.", code="subscriber_inactive")
        if subscriber.get("access_token") != request.token:
            raise ForbiddenError("El enlace ya no es válido.", code="invalid_token")
        return subscriber

    # ----------------------------------------------------------
    # Actions
    # ----------------------------------------------------------

    def fetch_feedback(self, request: StoryFeedbackRequest) -> Dict[str, Any]:
        story_filter = {"story_id": eq(request.story_id)}
        with ThreadPoolExecutor(max_workers=3) as executor:
            comments_future = executor.submit(
                self.supabase.select,
                COMMENTS_TABLE,
                story_filter,
                order="created_at.desc",
                error_message=FAILURE_MESSAGE,
            )
            own_reaction_future = executor.submit(
                self.supabase.select_one,
                REACTIONS_TABLE,
                {**story_filter, "subscriber_id": eq(request.subscriber_id)},
                columns="id",
                error_message=FAILURE_MESSAGE,
            )
            reaction_count_future = executor.submit(self.reaction_count, request.story_id)
            comments = comments_future.result()
            own_reaction = own_reaction_future.result()
            reaction_count = reaction_count_future.result()

        return {
            "success": True,
            "comments": build_comment_tree(comments, self.subscriber_names(comments)),
            "commentCount": len(comments),
            "hasReacted": own_reaction is not None,
            "reactionCount": reaction_count,
        }

    def add_comment(self, request: StoryFeedbackRequest, subscriber: Dict[str, Any]) -> Dict[str, Any]:
        if not request.content:
            raise RequestValidationError("El comentario necesita contenido.", code="content_required")
        rows = self.supabase.insert(
            COMMENTS_TABLE,
            {
                "story_id": request.story_id,
                "author_id": request.author_id,
                "subscriber_id": request.subscriber_id,
                "parent_comment_id": request.parent_comment_id,
                "content": request.content,
                "source": request.source,
            },
            error_message=FAILURE_MESSAGE,
        )
        row = rows[0] if rows else {}
        names = {request.subscriber_id: subscriber.get("name")} if subscriber.get("name") else {}
        return {"success": True, "comment": comment_node(row, names)}

    def toggle_reaction(self, request: StoryFeedbackRequest) -> Dict[str, Any]:
        reaction_filter = {
            "story_id": eq(request.story_id),
            "subscriber_id": eq(request.subscriber_id),
            "reaction_type": eq(request.reaction_type),
        }
        if request.active:
            self.supabase.insert(
                REACTIONS_TABLE,
                {
                    "story_id": request.story_id,
                    "author_id": request.author_id,
                    "subscriber_id": request.subscriber_id,
                    "reaction_type": request.reaction_type,
                    "source": request.source,
                },
                returning=False,
                ignore_duplicates=True,
                error_message=FAILURE_MESSAGE,
            )
        else:
            self.supabase.delete(REACTIONS_TABLE, reaction_filter, error_message=FAILURE_MESSAGE)
        return {
            "success": True,
            "hasReacted": bool(request.active),
            "reactionType": request.reaction_type,
            "reactionCount": self.reaction_count(request.story_id),
        }

    # ----------------------------------------------------------
    # Helpers
    # ----------------------------------------------------------

    def reaction_count(self, story_id: Optional[str]) -> int:
        rows = self.supabase.select(
            REACTIONS_TABLE,
            {"story_id": eq(story_id)},
            columns="id",
            error_message=FAILURE_MESSAGE,
        )
        return len(rows)

    def subscriber_names(self, comments: List[Dict[str, Any]]) -> Dict[str, str]:
        subscriber_ids = sorted({c["subscriber_id"] for c in comments if c.get("subscriber_id")})
        if not subscriber_ids:
            return {}
        rows = self.supabase.select(
            SUBSCRIBERS_TABLE,
            {"id": in_(subscriber_ids)},
            columns="id,name",
            error_message=FAILURE_MESSAGE,
        )
        return {row["id"]: row.get("name") for row in rows if row.get("id")}


story_feedback_handler = StoryFeedbackHandler.get_handler()
