__all__ = [
    "StoryAccessRequest",
    "StoryFeedbackRequest",
    "to_boolean",
]

from dataclasses import dataclass
from typing import Any, List, Optional

from aibs_informatics_core.models.base import RawField, StringField, custom_field

from narra_lambda.common.api.errors import RequestValidationError
from narra_lambda.common.api.model import ApiRequest

REACTION_TYPES: List[str] = ["heart"]
DEFAULT_REACTION_TYPE = "heart"
DEFAULT_EVENT_TYPE = "access_granted"
SOURCE_MAX_LENGTH = 120
COMMENT_MAX_LENGTH = 4000


def _text(value: Any) -> Optional[str]:
    """Trimmed string, or None for non strings and blanks."""
    if not isinstance(value, str):
        return None
    return value.strip() or None


def to_boolean(value: Any) -> bool:
    """Loose boolean: `"true"`, `"1"`, `"yes"` and non zero numbers are true."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in ("true", "1", "yes"):
            return True
        if normalized in ("false", "0", "no"):
            return False
    if isinstance(value, (int, float)):
        return value != 0
    return bool(value)


@dataclass
class SubscriberCredentialsRequest(ApiRequest):
    """Identity of a subscriber reading an author's blog. snake_case keys are accepted."""

    author_id: Optional[str] = custom_field(mm_field=RawField(allow_none=True), default=None)
    subscriber_id: Optional[str] = custom_field(mm_field=RawField(allow_none=True), default=None)
    token: Optional[str] = custom_field(mm_field=RawField(allow_none=True), default=None)
    story_id: Optional[str] = custom_field(mm_field=RawField(allow_none=True), default=None)
    source: Optional[str] = custom_field(mm_field=RawField(allow_none=True), default=None)

    def normalize_credentials(self) -> None:
        self.author_id = _text(self.author_id)
        self.subscriber_id = _text(self.subscriber_id)
        self.token = _text(self.token)
        self.story_id = _text(self.story_id)
        source = _text(self.source)
        self.source = source[:SOURCE_MAX_LENGTH] if source else None


@dataclass
class StoryFeedbackRequest(SubscriberCredentialsRequest):
    action: Optional[str] = custom_field(mm_field=StringField(allow_none=True), default=None)
    parent_comment_id: Optional[str] = custom_field(
        mm_field=RawField(allow_none=True), default=None
    )
    content: Optional[str] = custom_field(mm_field=RawField(allow_none=True), default=None)
    reaction_type: Optional[str] = custom_field(mm_field=RawField(allow_none=True), default=None)
    active: Any = custom_field(mm_field=RawField(allow_none=True), default=True)

    field_aliases = {"active": ["enabled", "state"]}

    def validate_request(self) -> None:
        self.normalize_credentials()
        action = _text(self.action)
        if not action:
            raise RequestValidationError("action is required")
        self.action = action.lower()
        if not (self.author_id and self.subscriber_id and self.story_id and self.token):
            raise RequestValidationError("authorId, subscriberId, storyId and token are required")
        self.parent_comment_id = _text(self.parent_comment_id)
        content = _text(self.content)
        self.content = content[:COMMENT_MAX_LENGTH] if content else None
        reaction_type = (_text(self.reaction_type) or "").lower()
        self.reaction_type = reaction_type if reaction_type in REACTION_TYPES else DEFAULT_REACTION_TYPE
        self.active = to_boolean(self.active)


@dataclass
class StoryAccessRequest(SubscriberCredentialsRequest):
    event_type: Optional[str] = custom_field(mm_field=RawField(allow_none=True), default=None)

    def validate_request(self) -> None:
        self.normalize_credentials()
        self.event_type = _text(self.event_type) or DEFAULT_EVENT_TYPE
        if not (self.author_id and self.subscriber_id and self.token):
            raise RequestValidationError("authorId, subscriberId and token are required")
