"""Transcript Store: saves exported transcripts to a local directory.

Invariants:
    - Each transcript lives under a directory named after its owner; the owner
      is fixed at upload time, never read back out of the file name
    - upload() overwrites an existing file of the same name for the same owner
    - Returned URL is base_url + "/" + file_name; the API serves it back
    - File names and owners are taken as-is, path separators are rejected
"""

import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalTranscriptStore:
    """TranscriptStore over a directory on disk."""

    def __init__(self, directory: str | Path, base_url: str = "/transcripts"):
        self.directory = Path(directory)
        self.base_url = base_url.rstrip("/")

    async def upload(self, file_name: str, content: str, owner: str | None = None) -> str:
        path = self.path_for(file_name, owner)
        await asyncio.to_thread(_write, path, content)
        logger.info(f"Transcript saved: {file_name}")
        return f"{self.base_url}/{file_name}"

    async def read(self, file_name: str, owner: str | None = None) -> str | None:
        """Content of a transcript uploaded for `owner`, or None."""
        path = self.path_for(file_name, owner)
        if not path.is_file():
            return None
        return await asyncio.to_thread(path.read_text, encoding="utf-8")

    def path_for(self, file_name: str, owner: str | None = None) -> Path:
        _check_segment(file_name, "transcript file name")
        if owner is None:
            return self.directory / file_name
        _check_segment(owner, "transcript owner")
        return self.directory / owner / file_name


def _check_segment(value: str, what: str) -> None:
    if not value or "/" in value or "\\" in value or value.startswith("."):
        raise ValueError(f"Invalid {what}: {value!r}")


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
