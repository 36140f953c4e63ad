from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path

from .errors import NotReady

MAX_UPLOAD_SIZE_BYTES = 25 * 1024 * 1024
ALLOWED_UPLOAD_EXTENSIONS = frozenset({"pdf", "doc", "docx", "ppt", "pptx"})

_FILE_TYPE_LABELS = {
    "pdf": "PDF",
    "doc": "WORD",
    "docx": "WORD",
    "ppt": "PPT",
    "pptx": "PPT",
}


def file_extension(file_name: str) -> str:
    return file_name.lower().rsplit(".", 1)[-1] if "." in file_name else ""


def file_type_label(file_name: str) -> str:
    return _FILE_TYPE_LABELS.get(file_extension(file_name), "FILE")


@dataclass(frozen=True)
class UploadDraft:
    file_name: str | None = None
    content: bytes | None = None
    note: str = ""

    @classmethod
    def from_path(cls, path: Path, note: str = "") -> UploadDraft:
        return cls(file_name=path.name, content=path.read_bytes(), note=note)

    @property
    def content_type(self) -> str:
        guessed, _ = mimetypes.guess_type(self.file_name or "")
        return guessed or "application/octet-stream"


def validate_upload(draft: UploadDraft, *, max_bytes: int = MAX_UPLOAD_SIZE_BYTES) -> None:
    if not draft.file_name or draft.content is None:
        raise NotReady("Select a file before submitting")
    if len(draft.content) > max_bytes:
        raise NotReady(f"Files may be at most {max_bytes // (1024 * 1024)} MB")
    if file_extension(draft.file_name) not in ALLOWED_UPLOAD_EXTENSIONS:
        raise NotReady("Only PDF, DOC, DOCX, PPT and PPTX files are accepted")
