"""OneDrive and SharePoint adapters (Microsoft Graph v1.0).

Both address items by path relative to a drive root:
    {drive}/root:/{path}             item
    {drive}/root:/{path}:/content    file content
    {drive}/root:/{path}:/children   folder listing
OneDrive uses the signed-in user's drive (/me/drive); SharePoint uses a
document library (/sites/{site_id}/drives/{drive_id}).
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from urllib.parse import quote

from .oauth_http import OAuthHttpAdapter
from .port import (
    ConnectionCheck,
    ReconnectRequiredError,
    StorageError,
    StorageFile,
    UploadResult,
    join_path,
    normalize_path,
    parse_path,
)

logger = logging.getLogger(__name__)

GRAPH_API = "https://graph.microsoft.com/v1.0"

# Graph simple upload limit; larger files go through an upload session
SIMPLE_UPLOAD_LIMIT = 4 * 1024 * 1024
# Must be a multiple of 320 KiB
UPLOAD_CHUNK_SIZE = 10 * 320 * 1024


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class OneDriveAdapter(OAuthHttpAdapter):
    provider = "onedrive"

    def __init__(self, access_token: str, root_folder: str = "", **kwargs):
        super().__init__(access_token, **kwargs)
        self.root_folder = normalize_path(root_folder)

    @property
    def drive_url(self) -> str:
        return f"{GRAPH_API}/me/drive"

    def _full_path(self, path: str) -> str:
        return join_path(self.root_folder, path)

    def _item_url(self, path: str, suffix: str = "") -> str:
        return self._raw_item_url(self._full_path(path), suffix)

    def _raw_item_url(self, full_path: str, suffix: str = "") -> str:
        """Item URL for a path that already includes root_folder."""
        if not full_path:
            return f"{self.drive_url}/root" + (f"/{suffix}" if suffix else "")
        return f"{self.drive_url}/root:/{quote(full_path, safe='/')}" + (f":/{suffix}" if suffix else "")

    def _get_item(self, path: str) -> Optional[dict]:
        response = self.request("GET", self._item_url(path))
        if response.status_code == 404:
            return None
        self._raise_for_status(response, "get item")
        return response.json()

    # ------------------------------------------------------------------
    # StorageAdapter
    # ------------------------------------------------------------------

    def _upload(self, data: bytes, path: str, content_type: str, metadata: Dict[str, str], overwrite: bool) -> UploadResult:
        conflict = "replace" if overwrite else "fail"
        if len(data) <= SIMPLE_UPLOAD_LIMIT:
            response = self.request(
                "PUT",
                self._item_url(path, "content"),
                params={"@microsoft.graph.conflictBehavior": conflict},
                content=data,
                headers={"Content-Type": content_type},
            )
            self._raise_for_status(response, "upload file")
            item = response.json()
        else:
            item = self._upload_session(data, path, conflict)

        return UploadResult(path=path, url=item.get("webUrl"), file_id=item.get("id"), size=len(data))

    def _upload_session(self, data: bytes, path: str, conflict: str) -> dict:
        _, filename = parse_path(path)
        response = self.request(
            "POST",
            self._item_url(path, "createUploadSession"),
            json={"item": {"@microsoft.graph.conflictBehavior": conflict, "name": filename}},
        )
        self._raise_for_status(response, "create upload session")
        upload_url = response.json()["uploadUrl"]

        total = len(data)
        start = 0
        while start < total:
            end = min(start + UPLOAD_CHUNK_SIZE, total)
            # The upload URL is pre-authorized; it must not carry the bearer token
            chunk_response = self._send(
                "PUT",
                upload_url,
                authenticated=False,
                content=data[start:end],
                headers={"Content-Length": str(end - start), "Content-Range": f"bytes {start}-{end - 1}/{total}"},
            )
            if chunk_response.status_code == 202:
                start = end
                continue
            if chunk_response.status_code in (200, 201):
                logger.info(f"Large file upload complete: {path} ({total} bytes)")
                return chunk_response.json()
            self._raise_for_status(chunk_response, "upload file chunk")

        raise StorageError("Upload session ended without a completed item")

    def download_file(self, path: str) -> bytes:
        response = self.request("GET", self._item_url(path, "content"), follow_redirects=True)
        if response.status_code == 404:
            raise FileNotFoundError(f"File not found: {path}")
        self._raise_for_status(response, "download file")
        return response.content

    def delete_file(self, path: str) -> bool:
        response = self.request("DELETE", self._item_url(path))
        if response.status_code == 404:
            return False
        self._raise_for_status(response, "delete file")
        return True

    def file_exists(self, path: str) -> bool:
        return self._get_item(path) is not None

    def list_files(self, folder_path: str = "") -> List[StorageFile]:
        folder = normalize_path(folder_path)
        url = self._item_url(folder, "children")
        files: List[StorageFile] = []

        while url:
            response = self.request("GET", url)
            if response.status_code == 404:
                return []
            self._raise_for_status(response, "list files")
            body = response.json()
            for item in body.get("value", []):
                files.append(StorageFile(
                    name=item["name"],
                    path=join_path(folder, item["name"]),
                    is_folder="folder" in item,
                    size=item.get("size"),
                    modified_at=_parse_time(item.get("lastModifiedDateTime")),
                    file_id=item.get("id"),
                ))
            url = body.get("@odata.nextLink")

        return files

    def create_folder(self, folder_path: str) -> str:
        """Create each missing segment under the root; existing folders are reused."""
        path = normalize_path(folder_path)
        full_path = self._full_path(path)
        parent = ""
        for segment in full_path.split("/") if full_path else []:
            current = join_path(parent, segment)
            response = self.request("GET", self._raw_item_url(current))
            if response.status_code == 404:
                response = self.request(
                    "POST",
                    self._raw_item_url(parent, "children"),
                    json={"name": segment, "folder": {}, "@microsoft.graph.conflictBehavior": "fail"},
                )
                # 409: created concurrently
                if response.status_code != 409:
                    self._raise_for_status(response, "create folder")
            else:
                self._raise_for_status(response, "get folder")
            parent = current
        return path

    def get_public_url(self, path: str) -> Optional[str]:
        item = self._get_item(path)
        return item.get("webUrl") if item else None

    def test_connection(self) -> List[ConnectionCheck]:
        checks: List[ConnectionCheck] = []

        try:
            response = self.request("GET", f"{self.drive_url}/root")
        except (ReconnectRequiredError, StorageError) as e:
            checks.append(ConnectionCheck("authentication", "failed", error=str(e)))
            checks.append(ConnectionCheck("folder_access", "skipped", message="Authentication failed"))
            return checks

        if not response.is_success:
            checks.append(ConnectionCheck("authentication", "failed", error=f"HTTP {response.status_code}"))
            checks.append(ConnectionCheck("folder_access", "skipped", message="Authentication failed"))
            return checks
        checks.append(ConnectionCheck("authentication", "passed", message="Drive is reachable"))

        if not self.root_folder:
            checks.append(ConnectionCheck("folder_access", "passed", message="Using the drive root"))
            return checks

        try:
            response = self.request("GET", self._raw_item_url(self.root_folder))
        except StorageError as e:
            checks.append(ConnectionCheck("folder_access", "failed", error=str(e)))
            return checks

        if response.status_code == 404:
            checks.append(ConnectionCheck(
                "folder_access", "passed",
                message=f"Folder '{self.root_folder}' does not exist yet and will be created on first upload",
            ))
        elif response.is_success:
            checks.append(ConnectionCheck("folder_access", "passed", message=f"Folder '{self.root_folder}' is accessible"))
        else:
            checks.append(ConnectionCheck("folder_access", "failed", error=f"HTTP {response.status_code}"))

        return checks


class SharePointAdapter(OneDriveAdapter):
    """Document library of a SharePoint site."""

    provider = "sharepoint"

    def __init__(self, access_token: str, site_id: str, drive_id: Optional[str] = None, root_folder: str = "", **kwargs):
        if not site_id:
            raise StorageError("SharePoint site_id is required")
        super().__init__(access_token, root_folder=root_folder, **kwargs)
        self.site_id = site_id
        self.drive_id = drive_id

    @property
    def drive_url(self) -> str:
        if self.drive_id:
            return f"{GRAPH_API}/sites/{self.site_id}/drives/{self.drive_id}"
        return f"{GRAPH_API}/sites/{self.site_id}/drive"
