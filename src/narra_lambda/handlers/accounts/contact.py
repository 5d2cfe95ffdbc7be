from dataclasses import dataclass
from typing import Any, Dict

from narra_lambda.handlers.accounts.model import ContactRequest
from narra_lambda.handlers.base import NarraApiHandler

CONTACT_MESSAGES_TABLE = "contact_messages"


@dataclass
class ContactHandler(NarraApiHandler[ContactRequest]):
    """Store a contact form message."""

    body_required = True
    supabase_config_message = "configuration_error"

    @classmethod
    def route_name(cls) -> str:
        return "contact"

    def handle(self, request: ContactRequest) -> Dict[str, Any]:
        self.supabase.insert(
            CONTACT_MESSAGES_TABLE,
            {
                "name": request.name,
                "email": request.email,
                "message": request.message,
                "is_current_client": request.is_current_client,
            },
            returning=False,
            error_message="database_error",
        )
        self.log.info(f"Contact message stored from {request.email}")
        return {"success": True}


contact_handler = ContactHandler.get_handler()
