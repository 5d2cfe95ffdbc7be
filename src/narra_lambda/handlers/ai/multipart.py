"""`multipart/form-data` decoding for audio uploads, on top of requests-toolbelt."""

__all__ = [
    "FormFile",
    "MultipartForm",
    "parse_multipart_form",
]

from dataclasses import dataclass, field
from email.message import Message
from typing import Dict, Optional

from requests_toolbelt.multipart.decoder import (
    BodyPart,
    ImproperBodyPartContentException,
    MultipartDecoder,
    NonMultipartContentTypeException,
)

DEFAULT_FILENAME = "upload"
DEFAULT_FILE_CONTENT_TYPE = "application/octet-stream"


@dataclass
class FormFile:
    filename: str
    content: bytes
    content_type: str


@dataclass
class MultipartForm:
    fields: Dict[str, str] = field(default_factory=dict)
    files: Dict[str, FormFile] = field(default_factory=dict)

    def add_part(self, part: BodyPart) -> None:
        """Add a decoded part as a field, or as a file when it names a filename.

        Parts without a `name` are ignored.
        """
        disposition = _header(part, "Content-Disposition")
        name = disposition.get_param("name", header="Content-Disposition")
        if not name:
            return
        filename = disposition.get_param("filename", header="Content-Disposition")
        if filename is None:
            self.fields[str(name)] = part.content.decode(part.encoding, errors="ignore")
            return
        content_type = part.headers.get(b"Content-Type", b"").decode(part.encoding).strip()
        self.files[str(name)] = FormFile(
            filename=str(filename) or DEFAULT_FILENAME,
            content=part.content,
            content_type=content_type or DEFAULT_FILE_CONTENT_TYPE,
        )


def _header(part: BodyPart, name: str) -> Message:
    header = Message()
    value = part.headers.get(name.encode(part.encoding))
    if value:
        header[name] = value.decode(part.encoding)
    return header


def multipart_boundary(content_type: str) -> Optional[str]:
    header = Message()
    header["Content-Type"] = content_type
    boundary = header.get_param("boundary")
    return str(boundary).strip() if boundary else None


def parse_multipart_form(body: bytes, content_type: str) -> Optional[MultipartForm]:
    """Split a multipart body into its text fields and its files.

    Args:
        body (bytes): The raw request body.
        content_type (str): The request's `Content-Type`, including its boundary.

    Returns:
        The decoded form, or None when the content type carries no boundary or a part
        of the body is malformed.
    """
    if not multipart_boundary(content_type):
        return None
    try:
        decoder = MultipartDecoder(body, content_type)
    except (ImproperBodyPartContentException, NonMultipartContentTypeException):
        return None

    form = MultipartForm()
    for part in decoder.parts:
        form.add_part(part)
    return form
