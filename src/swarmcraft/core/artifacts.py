"""Versioned file artifacts produced by agents."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)

SUPPORTED_FILE_TYPES = (
    ".py", ".csv", ".tsv", ".txt", ".json", ".xml", ".html", ".yaml", ".yml", ".md",
    ".rst", ".log", ".sh", ".bat", ".ps1", ".ini", ".hcl", ".tf", ".properties",
)
SAVE_AS_FORMATS = (".md", ".txt", ".py")


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class FileVersion(BaseModel):
    version_number: int
    content: str
    timestamp: str = Field(default_factory=_now)

    def __str__(self) -> str:
        return f"Version {self.version_number} (Timestamp: {self.timestamp}):\n{self.content}"


class Artifact(BaseModel):
    file_path: str
    file_type: Optional[str] = None
    contents: str = ""
    folder_path: str = ""
    edit_count: int = 0
    versions: list[FileVersion] = []

    @model_validator(mode="after")
    def _infer_file_type(self) -> "Artifact":
        if not self.file_type:
            ext = Path(self.file_path).suffix.lower()
            if ext not in SUPPORTED_FILE_TYPES:
                raise ValueError(f"Unsupported file type: {ext or '(none)'}")
            self.file_type = ext
        return self

    @property
    def path(self) -> Path:
        return Path(self.folder_path) / self.file_path if self.folder_path else Path(self.file_path)

    def create(self, initial_content: str) -> None:
        self.contents = initial_content
        self.versions = [FileVersion(version_number=1, content=initial_content)]
        self.edit_count = 0

    def edit(self, new_content: str) -> None:
        self.contents = new_content
        self.edit_count += 1
        self.versions.append(FileVersion(version_number=len(self.versions) + 1, content=new_content))

    def save(self) -> Path:
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.contents, encoding="utf-8")
        return path

    def load(self) -> None:
        self.create(self.path.read_text(encoding="utf-8"))

    def get_version(self, version_number: int) -> Optional[FileVersion]:
        for version in self.versions:
            if version.version_number == version_number:
                return version
        return None

    def get_contents(self) -> str:
        return self.contents

    def get_version_history(self) -> str:
        return "\n\n".join(str(v) for v in self.versions)

    def export_to_json(self, file_path: Path) -> None:
        Path(file_path).write_text(self.model_dump_json(indent=4), encoding="utf-8")

    @classmethod
    def import_from_json(cls, file_path: Path) -> "Artifact":
        return cls.model_validate_json(Path(file_path).read_text(encoding="utf-8"))

    def get_metrics(self) -> str:
        return (
            f"File Path: {self.file_path}\n"
            f"File Type: {self.file_type}\n"
            f"Current Contents:\n{self.contents}\n\n"
            f"Edit Count: {self.edit_count}\n"
            f"Version History:\n{self.get_version_history()}"
        )

    def save_as(self, output_format: str) -> Path:
        """Write the current contents next to the artifact with another extension."""
        if output_format not in SAVE_AS_FORMATS:
            raise ValueError(
                f"Unsupported output format. Supported formats are: {', '.join(SAVE_AS_FORMATS)}"
            )
        target = self.path.with_suffix(output_format)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.contents, encoding="utf-8")
        logger.debug("Saved artifact %s as %s", self.file_path, target)
        return target
