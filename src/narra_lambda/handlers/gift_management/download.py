from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

import requests

from narra_lambda.client.archive import format_spanish_date, strip_html
from narra_lambda.clients.supabase import eq
from narra_lambda.common.api.errors import NotFoundError, UpstreamError
from narra_lambda.common.api.response import ApiResponse
from narra_lambda.handlers.gift_management.base import ManagementTokenHandler
from narra_lambda.handlers.gift_management.model import ManagementTokenRequest

STORIES_TABLE = "stories"
BANNER_RULE = "=" * 40
STORY_RULE = "=" * 80
CONTENT_RULE = "─" * 80


def render_published_stories(
    author_email: str, stories: Sequence[Dict[str, Any]], now: datetime
) -> str:
    """Render published stories as one plain text document."""
    total = len(stories)
    parts = [
        f"{BANNER_RULE}\n"
        f"HISTORIAS DE {author_email.upper()}\n"
        f"Descargado: {format_spanish_date(now, with_time=False)}\n"
        f"Total de historias: {total}\n"
        f"{BANNER_RULE}\n\n"
        "NOTA: Esta descarga incluye solo el texto de las historias publicadas.\n"
        "No incluye fotos, grabaciones de voz, borradores ni historial de versiones.\n"
        "Para una descarga completa, el autor debe hacerlo desde su cuenta en /app/settings.\n\n"
        f"{BANNER_RULE}\n\n"
    ]
    for index, story in enumerate(stories, start=1):
        published_at = story.get("published_at")
        excerpt = f"Extracto:\n{story['excerpt']}\n\n" if story.get("excerpt") else ""
        parts.append(
            f"\n{STORY_RULE}\n"
            f"HISTORIA {index} DE {total}\n"
            f"{STORY_RULE}\n\n"
            f"Título: {story.get('title') or 'Sin título'}\n"
            "Fecha de publicación: "
            f"{format_spanish_date(published_at, with_time=False) if published_at else 'Sin fecha'}\n"
            f"Fecha de creación: {format_spanish_date(story.get('created_at'), with_time=False)}\n\n"
            f"{excerpt}\n"
            f"{CONTENT_RULE}\n\n"
            f"{strip_html(story.get('content')) or 'Sin contenido'}\n\n"
            f"{STORY_RULE}\n\n"
        )
    parts.append(f"\n{BANNER_RULE}\nFIN DEL DOCUMENTO\n{BANNER_RULE}\n")
    return "".join(parts)


@dataclass
class GiftManagementDownloadDataHandler(ManagementTokenHandler[ManagementTokenRequest]):
    """Download the author's published stories as a text file."""

    body_required = False

    @classmethod
    def route_name(cls) -> str:
        return "gift-management-download-data"

    @classmethod
    def route_methods(cls) -> List[str]:
        return ["GET"]

    def handle(self, request: ManagementTokenRequest) -> ApiResponse:
        author_user_id = self.management_token(request.token).get("author_user_id")

        try:
            author = self.supabase.get_user(author_user_id) or {}
        except (UpstreamError, requests.RequestException) as e:
            self.log.warning(f"Could not fetch author {author_user_id}: {e}")
            author = {}

        stories = self.supabase.select(
            STORIES_TABLE,
            {"author_id": eq(author_user_id), "is_published": eq("true")},
            columns="id,title,content,excerpt,created_at,published_at",
            order="published_at.desc",
            error_message="Error al obtener historias",
        )
        if not stories:
            raise NotFoundError("No hay historias publicadas para descargar")

        now = datetime.now(timezone.utc)
        document = render_published_stories(author.get("email") or "autor", stories, now)
        self.log.info(f"Exporting {len(stories)} published stories of {author_user_id}")
        return ApiResponse.attachment(
            document,
            filename=f"narra-historias-{now:%Y-%m-%d}.txt",
            content_type="text/plain; charset=utf-8",
        )


gift_management_download_data_handler = GiftManagementDownloadDataHandler.get_handler()
