"""Google Drive adapter (Drive REST API v3).

Drive has no paths, only parent/child links, so each path segment is looked
up by name under its parent. Resolved folder IDs are cached per adapter.
"""

import json
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from .oauth_http import OAuthHttpAdapter
from .port import ConnectionCheck, ReconnectRequiredError, StorageError, StorageFile, UploadResult, normalize_path, parse_path

logger = logging.getLogger(__name__)

DRIVE_API = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_API = "https://www.googleapis.com/upload/drive/v3"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
FILE_FIELDS = "id,name,mimeType,size,modifiedTime,webViewLink"


def _escape_query(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _multipart_related(metadata: dict, data: bytes, content_type: str) -> tuple[bytes, str]:
    boundary = f"docuflow-{uuid.uuid4().hex}"
    head = (
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        f"{json.dumps(metadata)}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {content_type}\r\n\r\n"
    ).encode("utf-8")
    tail = f"\r\n--{boundary}--\r\n".encode("utf-8")
    return head + data + tail, f"multipart/related; boundary={boundary}"


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class GoogleDriveAdapter(OAuthHttpAdapter):
    provider = "google_drive"

    def __init__(self, access_token: str, root_folder_id: str = "root", **kwargs):
        super().__init__(access_token, **kwargs)
        self.root_folder_id = root_folder_id or "root"
        self._folder_ids: Dict[str, str] = {"": self.root_folder_id}

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _find_child(self, parent_id: str, name: str, folders_only: bool = False) -> Optional[dict]:
        query = f"name = '{_escape_query(name)}' and '{parent_id}' in parents and trashed = false"
        if folders_only:
            query += f" and mimeType = '{FOLDER_MIME_TYPE}'"
        response = self.request(
            "GET",
            f"{DRIVE_API}/files",
            params={"q": query, "fields": f"files({FILE_FIELDS})", "pageSize": 1},
        )
        self._raise_for_status(response, "search files")
        files = response.json().get("files", [])
        return files[0] if files else None

    def _resolve_folder_id(self, folder_path: str, create: bool = False) -> Optional[str]:
        path = normalize_path(folder_path)
        if path in self._folder_ids:
            return self._folder_ids[path]

        parent_id = self.root_folder_id
        walked = ""
        for segment in path.split("/"):
            walked = f"{walked}/{segment}" if walked else segment
            if walked in self._folder_ids:
                parent_id = self._folder_ids[walked]
                continue

            folder = self._find_child(parent_id, segment, folders_only=True)
            if folder is None:
                if not create:
                    return None
                folder = self._create_child_folder(parent_id, segment)
            parent_id = folder["id"]
            self._folder_ids[walked] = parent_id

        return parent_id

    def _create_child_folder(self, parent_id: str, name: str) -> dict:
        response = self.request(
            "POST",
            f"{DRIVE_API}/files",
            params={"fields": "id,name"},
            json={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
        )
        self._raise_for_status(response, "create folder")
        logger.debug(f"Created Drive folder '{name}' under {parent_id}")
        return response.json()

    def _resolve_file(self, path: str) -> Optional[dict]:
        folder, filename = parse_path(path)
        folder_id = self._resolve_folder_id(folder)
        if folder_id is None:
            return None
        return self._find_child(folder_id, filename)

    # ------------------------------------------------------------------
    # StorageAdapter
    # ------------------------------------------------------------------

    def _upload(self, data: bytes, path: str, content_type: str, metadata: Dict[str, str], overwrite: bool) -> UploadResult:
        folder, filename = parse_path(path)
        folder_id = self._resolve_folder_id(folder, create=True)

        if overwrite:
            existing = self._find_child(folder_id, filename)
            if existing is not None:
                self.request("DELETE", f"{DRIVE_API}/files/{existing['id']}")

        file_metadata = {"name": filename, "parents": [folder_id]}
        if metadata:
            file_metadata["appProperties"] = {str(k): str(v) for k, v in metadata.items()}

        body, multipart_type = _multipart_related(file_metadata, data, content_type)
        response = self.request(
            "POST",
            f"{DRIVE_UPLOAD_API}/files",
            params={"uploadType": "multipart", "fields": FILE_FIELDS},
            content=body,
            headers={"Content-Type": multipart_type},
        )
        self._raise_for_status(response, "upload file")
        created = response.json()
        return UploadResult(path=path, url=created.get("webViewLink"), file_id=created.get("id"), size=len(data))

    def download_file(self, path: str) -> bytes:
        item = self._resolve_file(path)
        if item is None:
            raise FileNotFoundError(f"File not found: {path}")
        response = self.request("GET", f"{DRIVE_API}/files/{item['id']}", params={"alt": "media"})
        self._raise_for_status(response, "download file")
        return response.content

    def delete_file(self, path: str) -> bool:
        item = self._resolve_file(path)
        if item is None:
            return False
        response = self.request("DELETE", f"{DRIVE_API}/files/{item['id']}")
        if response.status_code == 404:
            return False
        self._raise_for_status(response, "delete file")
        return True

    def file_exists(self, path: str) -> bool:
        return self._resolve_file(path) is not None

    def list_files(self, folder_path: str = "") -> List[StorageFile]:
        folder = normalize_path(folder_path)
        folder_id = self._resolve_folder_id(folder)
        if folder_id is None:
            return []

        files: List[StorageFile] = []
        page_token = None
        while True:
            params = {
                "q": f"'{folder_id}' in parents and trashed = false",
                "fields": f"nextPageToken,files({FILE_FIELDS})",
                "pageSize": 100,
            }
            if page_token:
                params["pageToken"] = page_token
            response = self.request("GET", f"{DRIVE_API}/files", params=params)
            self._raise_for_status(response, "list files")
            body = response.json()

            for item in body.get("files", []):
                files.append(StorageFile(
                    name=item["name"],
                    path=f"{folder}/{item['name']}" if folder else item["name"],
                    is_folder=item.get("mimeType") == FOLDER_MIME_TYPE,
                    size=int(item["size"]) if item.get("size") else None,
                    modified_at=_parse_time(item.get("modifiedTime")),
                    file_id=item["id"],
                ))

            page_token = body.get("nextPageToken")
            if not page_token:
                return files

    def create_folder(self, folder_path: str) -> str:
        path = normalize_path(folder_path)
        if path:
            self._resolve_folder_id(path, create=True)
        return path

    def get_public_url(self, path: str) -> Optional[str]:
        item = self._resolve_file(path)
        return item.get("webViewLink") if item else None

    def test_connection(self) -> List[ConnectionCheck]:
        checks: List[ConnectionCheck] = []

        try:
            response = self.request("GET", f"{DRIVE_API}/about", params={"fields": "user"})
        except (ReconnectRequiredError, StorageError) as e:
            checks.append(ConnectionCheck("authentication", "failed", error=str(e)))
            checks.append(ConnectionCheck("folder_access", "skipped", message="Authentication failed"))
            return checks

        if not response.is_success:
            checks.append(ConnectionCheck("authentication", "failed", error=f"HTTP {response.status_code}"))
            checks.append(ConnectionCheck("folder_access", "skipped", message="Authentication failed"))
            return checks

        user = response.json().get("user", {})
        checks.append(ConnectionCheck(
            "authentication", "passed",
            message=f"Connected as {user.get('emailAddress') or user.get('displayName') or 'Google user'}",
        ))

        try:
            response = self.request("GET", f"{DRIVE_API}/files/{self.root_folder_id}", params={"fields": "id,name,mimeType"})
        except StorageError as e:
            checks.append(ConnectionCheck("folder_access", "failed", error=str(e)))
            return checks

        if response.status_code == 404:
            checks.append(ConnectionCheck("folder_access", "failed", error="Root folder not found"))
        elif not response.is_success:
            checks.append(ConnectionCheck("folder_access", "failed", error=f"HTTP {response.status_code}"))
        else:
            checks.append(ConnectionCheck("folder_access", "passed", message=f"Folder '{response.json().get('name')}' is accessible"))

        return checks
