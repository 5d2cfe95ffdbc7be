"""Personal archive export.

Renders an author's stories as plain text and bundles them, together with photo and
recording references and the version history, into a ZIP archive:

    info.txt
    publicadas/<title>/historia.txt
    borradores/<title>/historia.txt
    <status>/<title>/imagenes/imagen-1-jpg.txt
    <status>/<title>/grabaciones/grabacion-1-mp3.txt
    <status>/<title>/versiones/version-1.txt

Example:
    ```python
    archive = build_archive(
        stories=[ArchiveStory(story={"title": "Mi infancia", "content": "<p>Hola</p>"})],
        metadata={"nombre": "Ana"},
        name="Ana",
    )
    archive.save("/tmp/exports")
    ```
"""

__all__ = [
    "Archive",
    "ArchiveStory",
    "build_archive",
    "build_archive_from_export",
    "file_extension",
    "format_spanish_date",
    "render_story_text",
    "render_version_text",
    "sanitize_file_name",
    "strip_html",
]

import html
import io
import json
import re
import zipfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from urllib.parse import urlsplit

from aibs_informatics_core.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TITLE = "Sin título"
PUBLISHED_FOLDER = "publicadas"
DRAFTS_FOLDER = "borradores"
STORY_FILE = "historia.txt"
INFO_FILE = "info.txt"
MAX_FILE_NAME_LENGTH = 200

HEAVY_RULE = "═" * 80
LIGHT_RULE = "─" * 80
VERSION_RULE = "─" * 60

SPANISH_MONTHS = [
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
]

LINE_BREAK_PATTERN = re.compile(r"<br\s*/?>", re.IGNORECASE)
PARAGRAPH_END_PATTERN = re.compile(r"</p>", re.IGNORECASE)
TAG_PATTERN = re.compile(r"<[^>]+>")
EXTRA_BLANK_LINES_PATTERN = re.compile(r"\n{3,}")
INVALID_FILE_CHARS_PATTERN = re.compile(r'[<>:"/\\|?*]')
WHITESPACE_PATTERN = re.compile(r"\s+")
EXTENSION_PATTERN = re.compile(r"\.([a-zA-Z0-9]+)$")


# ----------------------------------------------------------
# Text helpers
# ----------------------------------------------------------


def strip_html(content: Optional[str]) -> str:
    """Convert rich text HTML to plain text.

    `<br>` becomes a line break and every closing `</p>` a blank line. Remaining tags
    are dropped and entities decoded.
    """
    if not content:
        return ""
    text = LINE_BREAK_PATTERN.sub("\n", content)
    text = PARAGRAPH_END_PATTERN.sub("\n\n", text)
    text = TAG_PATTERN.sub("", text)
    text = html.unescape(text).replace("\xa0", " ")
    text = EXTRA_BLANK_LINES_PATTERN.sub("\n\n", text)
    return text.strip()


def sanitize_file_name(name: Optional[str]) -> str:
    name = INVALID_FILE_CHARS_PATTERN.sub("-", name or "")
    name = WHITESPACE_PATTERN.sub(" ", name).strip()
    return name[:MAX_FILE_NAME_LENGTH]


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str) and value:
        try:
            moment = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def format_spanish_date(value: Union[str, datetime, None], with_time: bool = True) -> str:
    """Long Spanish date, e.g. `15 de marzo de 2024, 14:30` (UTC).

    Unparseable values are returned unchanged.
    """
    moment = parse_timestamp(value)
    if moment is None:
        return str(value or "")
    formatted = f"{moment.day} de {SPANISH_MONTHS[moment.month - 1]} de {moment.year}"
    if with_time:
        formatted += f", {moment.hour:02d}:{moment.minute:02d}"
    return formatted


def file_extension(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        path = urlsplit(url).path
    except ValueError:
        return None
    match = EXTENSION_PATTERN.search(path)
    return match.group(1) if match else None


# ----------------------------------------------------------
# Renderers
# ----------------------------------------------------------


def render_story_text(story: Mapping[str, Any]) -> str:
    """Render a story row as the text of its `historia.txt`."""
    lines = [HEAVY_RULE, f"  {story.get('title') or DEFAULT_TITLE}", HEAVY_RULE, ""]

    if story.get("story_date"):
        lines.append(f"📅 Fecha de la historia: {format_spanish_date(story['story_date'])}")
    lines.append(f"📝 Creada: {format_spanish_date(story.get('created_at'))}")
    lines.append(f"✏️  Última edición: {format_spanish_date(story.get('updated_at'))}")
    if story.get("is_published") and story.get("published_at"):
        lines.append(f"🌐 Publicada: {format_spanish_date(story['published_at'])}")
    if story.get("word_count"):
        lines.append(f"📊 Palabras: {story['word_count']}")

    lines.extend(["", LIGHT_RULE, ""])

    if story.get("excerpt"):
        lines.extend(["EXTRACTO:", story["excerpt"], "", LIGHT_RULE, ""])

    lines.extend(["CONTENIDO:", "", strip_html(story.get("content"))])

    if story.get("voice_transcript"):
        lines.extend(["", "", LIGHT_RULE, "TRANSCRIPCIÓN DE VOZ:", ""])
        lines.append(strip_html(story["voice_transcript"]))

    lines.extend(["", "", HEAVY_RULE])
    return "\n".join(lines)


def render_version_text(version: Mapping[str, Any], position: int) -> str:
    lines = [
        f"VERSIÓN {position}",
        VERSION_RULE,
        f"Fecha: {format_spanish_date(version.get('created_at'))}",
    ]
    if version.get("version_number"):
        lines.append(f"Número de versión: {version['version_number']}")
    lines.extend(["", "CONTENIDO:", "", strip_html(version.get("content"))])
    return "\n".join(lines)


# ----------------------------------------------------------
# Archive
# ----------------------------------------------------------


@dataclass
class ArchiveStory:
    """A story row with its related photo, recording and version rows."""

    story: Dict[str, Any]
    photos: List[Dict[str, Any]] = field(default_factory=list)
    recordings: List[Dict[str, Any]] = field(default_factory=list)
    versions: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_published(self) -> bool:
        return bool(self.story.get("is_published"))


@dataclass
class Archive:
    filename: str
    content: bytes

    def entries(self) -> List[str]:
        with zipfile.ZipFile(io.BytesIO(self.content)) as bundle:
            return bundle.namelist()

    def read(self, entry: str) -> str:
        with zipfile.ZipFile(io.BytesIO(self.content)) as bundle:
            return bundle.read(entry).decode("utf-8")

    def save(self, directory: Union[str, Path]) -> Path:
        """Write the archive into `directory` (created if needed) and return its path."""
        target_dir = Path(directory)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / self.filename
        target.write_bytes(self.content)
        logger.info(f"Archive saved to {target}")
        return target


def archive_filename(name: str, now: Optional[datetime] = None) -> str:
    """`YYMMDD Narra - <name>.zip`"""
    now = now or datetime.now(timezone.utc)
    return f"{now:%y%m%d} Narra - {sanitize_file_name(name)}.zip"


def _unique_folder(base: str, used: Dict[str, int]) -> str:
    count = used.get(base, 0) + 1
    used[base] = count
    return base if count == 1 else f"{base} ({count})"


def _add_story(bundle: zipfile.ZipFile, folder: str, item: ArchiveStory) -> None:
    bundle.writestr(f"{folder}/{STORY_FILE}", render_story_text(item.story))

    for index, photo in enumerate(item.photos, start=1):
        url = photo.get("photo_url")
        extension = file_extension(url) or "jpg"
        bundle.writestr(
            f"{folder}/imagenes/imagen-{index}-{extension}.txt",
            f"URL de la imagen:\n{url}\n\n"
            "Puedes descargar este archivo manualmente desde esta URL.",
        )

    for index, recording in enumerate(item.recordings, start=1):
        url = recording.get("audio_url")
        if not url:
            continue
        extension = file_extension(url) or "mp3"
        bundle.writestr(
            f"{folder}/grabaciones/grabacion-{index}-{extension}.txt",
            f"URL de la grabación:\n{url}\n\n"
            "Puedes descargar este archivo manualmente desde esta URL.",
        )

    for index, version in enumerate(item.versions, start=1):
        number = version.get("version_number") or index
        bundle.writestr(f"{folder}/versiones/version-{number}.txt", render_version_text(version, index))


def build_archive(
    stories: Sequence[ArchiveStory],
    metadata: Mapping[str, Any],
    name: str,
    now: Optional[datetime] = None,
) -> Archive:
    """Bundle stories into a ZIP archive.

    Stories are grouped by publication status. Stories sharing a title get numbered
    folders. A story that fails to render is logged and skipped.

    Args:
        stories (Sequence[ArchiveStory]): Stories with their related rows.
        metadata (Mapping[str, Any]): Written to `info.txt` as indented JSON.
        name (str): Owner name used in the archive filename.
        now (Optional[datetime]): Export time. Defaults to the current UTC time.

    Returns:
        The archive bytes and filename.
    """
    buffer = io.BytesIO()
    used_folders: Dict[str, int] = {}
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=6) as bundle:
        for item in stories:
            status_folder = PUBLISHED_FOLDER if item.is_published else DRAFTS_FOLDER
            title = sanitize_file_name(item.story.get("title") or DEFAULT_TITLE) or DEFAULT_TITLE
            folder = _unique_folder(f"{status_folder}/{title}", used_folders)
            try:
                _add_story(bundle, folder, item)
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping story {item.story.get('id')}: {e}")
        bundle.writestr(INFO_FILE, json.dumps(dict(metadata), indent=2, ensure_ascii=False))
    return Archive(filename=archive_filename(name, now), content=buffer.getvalue())


def build_archive_from_export(data: Union[str, Mapping[str, Any]], now: Optional[datetime] = None) -> Archive:
    """Build an archive from the JSON export produced by the app.

    The export carries `metadata` (with `nombre`) and `historias`, each with `titulo`,
    `contenido`, `extracto`, `fecha_creacion`, `fecha_actualizacion` and `is_published`.
    """
    payload: Mapping[str, Any] = json.loads(data) if isinstance(data, str) else data
    metadata = payload.get("metadata") or {}
    stories = [
        ArchiveStory(
            story={
                "title": historia.get("titulo"),
                "content": historia.get("contenido"),
                "excerpt": historia.get("extracto"),
                "created_at": historia.get("fecha_creacion"),
                "updated_at": historia.get("fecha_actualizacion"),
                "is_published": historia.get("is_published"),
            }
        )
        for historia in payload.get("historias") or []
    ]
    return build_archive(stories, metadata, metadata.get("nombre") or "", now=now)
