"""Account deletion and personal data export for the signed in user."""

import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests

from narra_lambda.client.archive import ArchiveStory, build_archive
from narra_lambda.clients.supabase import eq, in_
from narra_lambda.common.api.errors import (
    NotFoundError,
    RequestValidationError,
    UpstreamError,
)
from narra_lambda.common.api.model import EmptyRequest
from narra_lambda.common.api.response import ApiResponse
from narra_lambda.handlers.accounts.model import DeleteAccountRequest
from narra_lambda.handlers.base import NarraApiHandler

STORIES_TABLE = "stories"
INVALID_TOKEN_MESSAGE = "Token inválido o expirado"
SERVER_CONFIG_MESSAGE = "Configuración de servidor incorrecta"

STORY_CHILD_TABLES = (
    "story_comments",
    "story_reactions",
    "story_tags",
    "story_versions",
    "story_photos",
    "voice_recordings",
)

# (table, owner column) deleted after the stories, in foreign key order.
AUTHOR_TABLES: Tuple[Tuple[str, str], ...] = (
    ("tags", "author_id"),
    ("subscribers", "user_id"),
    ("subscriber_access_logs", "author_id"),
    ("user_feedback", "user_id"),
    ("user_settings", "user_id"),
    ("users", "id"),
)

RELATED_QUERIES: Dict[str, Tuple[str, str]] = {
    "photos": ("story_photos", "position.asc"),
    "recordings": ("voice_recordings", "created_at.asc"),
    "versions": ("story_versions", "version_number.asc"),
}
MAX_FETCH_WORKERS = 8


@dataclass
class DeleteAccountHandler(NarraApiHandler[DeleteAccountRequest]):
    """Delete every row owned by the user, then the auth user itself.

    Each table is deleted independently: a failing step is logged and the deletion
    goes on. `deletedCounts` reports the rows removed per table.
    """

    supabase_config_message = SERVER_CONFIG_MESSAGE

    @classmethod
    def route_name(cls) -> str:
        return "delete-account"

    def handle(self, request: DeleteAccountRequest) -> Dict[str, Any]:
        user = self.authenticated_user(INVALID_TOKEN_MESSAGE)
        user_id = user.get("id")
        if not request.email or request.email != (user.get("email") or "").lower():
            raise RequestValidationError("El correo electrónico no coincide")

        self.log.info(f"Deleting account {user_id}")
        deleted_counts: Dict[str, int] = {}

        stories = self.tolerant_select(STORIES_TABLE, {"author_id": eq(user_id)}, columns="id")
        story_ids = [story.get("id") for story in stories]
        if story_ids:
            for table in STORY_CHILD_TABLES:
                self.delete_step(deleted_counts, table, {"story_id": in_(story_ids)})
        self.delete_step(deleted_counts, STORIES_TABLE, {"author_id": eq(user_id)})
        for table, column in AUTHOR_TABLES:
            self.delete_step(deleted_counts, table, {column: eq(user_id)})

        try:
            self.supabase.delete_user(user_id)
        except requests.RequestException as e:
            self.log.error(f"Error deleting auth user {user_id}: {e}")

        return {
            "success": True,
            "message": "Cuenta eliminada exitosamente",
            "deletedCounts": deleted_counts,
        }

    def delete_step(self, counts: Dict[str, int], table: str, filters: Mapping[str, str]) -> None:
        try:
            counts[table] = len(self.supabase.delete(table, filters))
        except (UpstreamError, requests.RequestException) as e:
            self.log.error(f"Failed to delete from {table}: {e}")

    def tolerant_select(self, table: str, filters: Mapping[str, str], **kwargs) -> List[Dict[str, Any]]:
        try:
            return self.supabase.select(table, filters, **kwargs)
        except (UpstreamError, requests.RequestException) as e:
            self.log.error(f"Failed to read {table}: {e}")
            return []


@dataclass
class DownloadUserDataHandler(NarraApiHandler[EmptyRequest]):
    """Export the user's stories, with photos, recordings and versions, as a ZIP archive.

    Reads are best effort: a failed read contributes no rows to the archive.
    """

    supabase_config_message = SERVER_CONFIG_MESSAGE
    decode_body = False

    @classmethod
    def route_name(cls) -> str:
        return "download-user-data"

    def handle(self, request: EmptyRequest) -> ApiResponse:
        user = self.authenticated_user(INVALID_TOKEN_MESSAGE)
        user_id = user.get("id")
        if not user_id:
            raise NotFoundError("Usuario no encontrado")

        profile = self.fetch("users", {"id": eq(user_id)})
        user_name = ((profile[0].get("name") if profile else None) or "Usuario").strip()

        stories = self.fetch(STORIES_TABLE, {"author_id": eq(user_id)}, order="created_at.desc")
        self.log.info(f"Exporting {len(stories)} stories of {user_id}")
        with ThreadPoolExecutor(max_workers=MAX_FETCH_WORKERS) as executor:
            archive_stories = list(executor.map(self.collect_story, stories))

        now = datetime.now(timezone.utc)
        metadata = {
            "exportado": now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "usuario": user.get("email"),
            "nombre": user_name,
            "total_historias": len(stories),
            "borradores": sum(1 for story in stories if not story.get("is_published")),
            "publicadas": sum(1 for story in stories if story.get("is_published")),
        }
        try:
            archive = build_archive(archive_stories, metadata, user_name, now=now)
        except (zipfile.BadZipFile, OSError, ValueError) as e:
            self.log.exception(f"Could not build archive for {user_id}: {e}")
            raise UpstreamError("Error al generar descarga de datos") from e

        return ApiResponse.attachment(archive.content, archive.filename, "application/zip")

    def collect_story(self, story: Dict[str, Any]) -> ArchiveStory:
        story_filter = {"story_id": eq(story.get("id"))}
        related = {
            key: self.fetch(table, story_filter, order=order)
            for key, (table, order) in RELATED_QUERIES.items()
        }
        return ArchiveStory(story=story, **related)

    def fetch(
        self, table: str, filters: Mapping[str, str], order: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        try:
            return self.supabase.select(table, filters, order=order)
        except (UpstreamError, requests.RequestException) as e:
            self.log.warning(f"Could not read {table}: {e}")
            return []


delete_account_handler = DeleteAccountHandler.get_handler()
download_user_data_handler = DownloadUserDataHandler.get_handler()
