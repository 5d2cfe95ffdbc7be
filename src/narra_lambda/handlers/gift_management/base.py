from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Generic

from narra_lambda.clients.supabase import eq
from narra_lambda.common.api.errors import UnauthorizedError
from narra_lambda.common.api.handler import API_REQUEST
from narra_lambda.handlers.base import NarraApiHandler

MANAGEMENT_TOKENS_TABLE = "gift_management_tokens"
SUBSCRIBERS_TABLE = "subscribers"


@dataclass  # type: ignore[misc] # mypy #5374
class ManagementTokenHandler(NarraApiHandler[API_REQUEST], Generic[API_REQUEST]):
    """Handler authorized by a gift management token.

    `management_token()` resolves the token row; its `author_user_id` scopes every action.
    """

    body_required = True
    invalid_token_message: ClassVar[str] = "Token inválido"

    def management_token(self, token: str) -> Dict[str, Any]:
        """Look up a management token.

        Raises:
            UnauthorizedError: If the token is unknown.
        """
        row = self.supabase.select_one(
            MANAGEMENT_TOKENS_TABLE,
            {"management_token": eq(token)},
            error_message="Error al validar token",
        )
        if row is None:
            self.log.info("Unknown management token")
            raise UnauthorizedError(self.invalid_token_message)
        return row

    def author_subscriber(self, author_user_id: str, subscriber_id: str, columns: str = "*"):
        return self.supabase.select_one(
            SUBSCRIBERS_TABLE,
            {"id": eq(subscriber_id), "user_id": eq(author_user_id)},
            columns=columns,
            error_message="Error al verificar suscriptor",
        )
