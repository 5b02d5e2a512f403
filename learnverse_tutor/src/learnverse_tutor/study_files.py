"""Uploaded study material shared by the quiz and summary generators."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from learnverse_tutor.errors import StudyFileError

TEXT_TYPES = ("text/plain", "text/markdown")

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
ACCEPTED_TYPES = {
    "text/plain": (".txt",),
    "application/pdf": (".pdf",),
    "application/msword": (".doc",),
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": (".docx",),
    "text/markdown": (".md",),
    "image/*": (".png", ".jpg", ".jpeg", ".gif"),
}
ACCEPTED_EXTENSIONS = tuple(ext for exts in ACCEPTED_TYPES.values() for ext in exts)


def is_accepted_type(name: str, mime_type: Optional[str]) -> bool:
    """PDF, DOC/DOCX, TXT, MD or image uploads, by MIME type or extension."""
    if mime_type:
        if mime_type in ACCEPTED_TYPES or mime_type.startswith("image/"):
            return True
    return name.lower().endswith(ACCEPTED_EXTENSIONS)


def guess_type(name: str) -> str:
    """MIME type implied by the file extension, for uploads sent without one."""
    lower = name.lower()
    for mime_type, extensions in ACCEPTED_TYPES.items():
        if lower.endswith(extensions):
            return "image/" + lower.rsplit(".", 1)[1] if mime_type == "image/*" else mime_type
    return "application/octet-stream"


@dataclass
class StudyFile:
    name: str
    content: str = ""
    type: str = "text/plain"
    size: Optional[int] = None

    @property
    def is_text(self) -> bool:
        return self.type in TEXT_TYPES or self.name.endswith((".md", ".txt"))

    @property
    def title(self) -> str:
        """File name without its extension."""
        stem, dot, _ = self.name.rpartition(".")
        return stem if dot else self.name

    @property
    def byte_size(self) -> int:
        """Declared upload size, or the size of the content we received."""
        if self.size is not None:
            return self.size
        return len(self.content.encode("utf-8"))

    def readable_content(self) -> str:
        """Text content, or a placeholder for binary uploads we can't read."""
        if self.is_text:
            return self.content or ""
        return f"Content from {self.name} ({self.type})"

    def validate(self) -> None:
        """
        Check the upload limits.

        Raises:
            StudyFileError: unsupported file type or larger than 10MB
        """
        if not is_accepted_type(self.name, self.type):
            raise StudyFileError(
                f"{self.name} is not a supported file type. Upload PDF, DOC, TXT, MD, or image files."
            )
        if self.byte_size > MAX_FILE_SIZE:
            raise StudyFileError(f"{self.name} is larger than the 10MB upload limit.")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StudyFile":
        """Build and validate an uploaded file; raises StudyFileError."""
        study_file = cls(
            name=data["name"],
            content=data.get("content") or "",
            type=data.get("type") or guess_type(data["name"]),
            size=data.get("size"),
        )
        study_file.validate()
        return study_file
