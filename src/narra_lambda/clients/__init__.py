"""REST clients for the third parties Narra talks to."""

from narra_lambda.clients.base import HttpClient
from narra_lambda.clients.openai import OpenAIClient
from narra_lambda.clients.resend import ResendClient
from narra_lambda.clients.stripe import StripeClient
from narra_lambda.clients.supabase import SupabaseClient

__all__ = [
    "HttpClient",
    "OpenAIClient",
    "ResendClient",
    "StripeClient",
    "SupabaseClient",
]
