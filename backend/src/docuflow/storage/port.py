"""Storage Port - interface every storage destination implements.

Adapters (object store, Google Drive, OneDrive, SharePoint, Azure Blob)
work with slash-separated paths relative to the destination's configured
root. Uploads never overwrite unless asked to: a colliding filename gets a
numeric suffix instead.

Example Usage:
    adapter = create_adapter(storage_config)
    adapter.create_folder("documents/pdf/2024-03-09")
    result = adapter.upload_file(data, "passport.pdf", "documents/pdf/2024-03-09")
    result.path  # "documents/pdf/2024-03-09/passport.pdf" or ".../passport_1.pdf"
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

MAX_UNIQUE_ATTEMPTS = 1000


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ReconnectRequiredError(StorageError):
    """Provider rejected the credentials even after a token refresh."""
    pass


@dataclass
class UploadResult:
    path: str
    url: Optional[str] = None
    file_id: Optional[str] = None
    size: int = 0

    def to_dict(self) -> dict:
        return {"path": self.path, "url": self.url, "file_id": self.file_id, "size": self.size}


@dataclass
class StorageFile:
    name: str
    path: str
    is_folder: bool = False
    size: Optional[int] = None
    modified_at: Optional[datetime] = None
    file_id: Optional[str] = None


@dataclass
class ConnectionCheck:
    """One step of a connection test. status is "passed", "failed" or "skipped"."""
    name: str
    status: str
    message: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"name": self.name, "status": self.status}
        if self.message:
            result["message"] = self.message
        if self.error:
            result["error"] = self.error
        return result


def normalize_path(path: Optional[str]) -> str:
    """Forward slashes, no empty segments, no leading or trailing slash.

    >>> normalize_path("//documents\\\\pdf//2024/")
    'documents/pdf/2024'
    """
    if not path:
        return ""
    parts = [part.strip() for part in re.split(r"[\\/]+", path)]
    return "/".join(part for part in parts if part and part != ".")


def join_path(*parts: Optional[str]) -> str:
    """Join path fragments, ignoring empty ones."""
    return normalize_path("/".join(part for part in parts if part))


def parse_path(path: str) -> Tuple[str, str]:
    """Split a path into (folder, filename).

    >>> parse_path("documents/pdf/a.pdf")
    ('documents/pdf', 'a.pdf')
    """
    normalized = normalize_path(path)
    if "/" not in normalized:
        return "", normalized
    folder, filename = normalized.rsplit("/", 1)
    return folder, filename


def generate_unique_filename(filename: str, exists: Callable[[str], bool]) -> str:
    """Return filename, or the first of name_1.ext, name_2.ext, ... not taken.

    Raises:
        StorageError: If no free name is found within MAX_UNIQUE_ATTEMPTS
    """
    if not exists(filename):
        return filename

    stem, ext = os.path.splitext(filename)
    for counter in range(1, MAX_UNIQUE_ATTEMPTS + 1):
        candidate = f"{stem}_{counter}{ext}"
        if not exists(candidate):
            return candidate
    raise StorageError(f"Could not find a free filename for '{filename}'")


class StorageAdapter(ABC):
    """Port interface for document storage destinations.

    Subclasses implement the primitive operations; upload_file() handles
    name collisions for all of them.
    """

    provider: str = ""

    def upload_file(
        self,
        data: bytes,
        filename: str,
        folder_path: str = "",
        metadata: Optional[Dict[str, str]] = None,
        overwrite: bool = False,
        content_type: Optional[str] = None,
    ) -> UploadResult:
        """Store data as folder_path/filename.

        Args:
            data: File content
            filename: Desired file name
            folder_path: Destination folder (created by the caller)
            metadata: Provider metadata/tags, where supported
            overwrite: Replace an existing file instead of renaming the upload
            content_type: MIME type

        Raises:
            StorageError: If the upload fails
            ReconnectRequiredError: If the provider credentials are no longer valid
        """
        folder = normalize_path(folder_path)
        name = normalize_path(filename).replace("/", "_")
        if not name:
            raise StorageError("Filename is required")

        if not overwrite:
            name = generate_unique_filename(name, lambda candidate: self.file_exists(join_path(folder, candidate)))

        path = join_path(folder, name)
        result = self._upload(data, path, content_type or "application/octet-stream", metadata or {}, overwrite)
        logger.info(
            f"Uploaded file to {self.provider}: path={result.path}, size={len(data)}",
            extra={"provider": self.provider},
        )
        return result

    @abstractmethod
    def _upload(self, data: bytes, path: str, content_type: str, metadata: Dict[str, str], overwrite: bool) -> UploadResult:
        pass

    @abstractmethod
    def download_file(self, path: str) -> bytes:
        """
        Raises:
            FileNotFoundError: If the file does not exist
            StorageError: If the download fails
        """
        pass

    @abstractmethod
    def delete_file(self, path: str) -> bool:
        """Delete a file. Returns False if it did not exist."""
        pass

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def list_files(self, folder_path: str = "") -> List[StorageFile]:
        pass

    @abstractmethod
    def create_folder(self, folder_path: str) -> str:
        """Create folder_path and any missing parents; returns the normalized path."""
        pass

    @abstractmethod
    def get_public_url(self, path: str) -> Optional[str]:
        pass

    @abstractmethod
    def test_connection(self) -> List[ConnectionCheck]:
        """Run provider checks; never raises for an unreachable provider."""
        pass

    def close(self) -> None:
        pass
