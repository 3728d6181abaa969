"""Azure Blob Storage adapter (azure-storage-blob).

Blob names are "{prefix}/{path}"; virtual directories need no creation.
"""

import logging
from typing import Dict, List, Optional

from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings

from .port import ConnectionCheck, StorageAdapter, StorageError, StorageFile, UploadResult, join_path, normalize_path

logger = logging.getLogger(__name__)


class AzureBlobAdapter(StorageAdapter):
    provider = "azure_blob"

    def __init__(
        self,
        container_name: str,
        connection_string: Optional[str] = None,
        account_url: Optional[str] = None,
        credential=None,
        prefix: str = "",
        service_client: Optional[BlobServiceClient] = None,
    ):
        """
        Args:
            container_name: Blob container holding the documents
            connection_string: Storage account connection string
            account_url: https://<account>.blob.core.windows.net (with credential)
            credential: Account key or SAS token used with account_url
            prefix: Blob name prefix all paths live under
            service_client: Pre-built client

        Raises:
            StorageError: If neither a connection string nor an account URL is given
        """
        if service_client is not None:
            self.service_client = service_client
        elif connection_string:
            self.service_client = BlobServiceClient.from_connection_string(connection_string)
        elif account_url:
            self.service_client = BlobServiceClient(account_url=account_url, credential=credential)
        else:
            raise StorageError("Azure Blob storage requires a connection string or an account URL")

        self.container_name = container_name
        self.container = self.service_client.get_container_client(container_name)
        self.prefix = normalize_path(prefix)

    def _blob_name(self, path: str) -> str:
        return join_path(self.prefix, path)

    def _relative(self, name: str) -> str:
        if self.prefix and name.startswith(self.prefix + "/"):
            return name[len(self.prefix) + 1:]
        return name

    def _upload(self, data: bytes, path: str, content_type: str, metadata: Dict[str, str], overwrite: bool) -> UploadResult:
        blob = self.container.get_blob_client(self._blob_name(path))
        try:
            blob.upload_blob(
                data,
                overwrite=overwrite,
                metadata={str(k): str(v) for k, v in metadata.items()},
                content_settings=ContentSettings(content_type=content_type),
            )
        except ResourceExistsError:
            raise StorageError(f"File already exists: {path}")
        except AzureError as e:
            logger.error(f"Azure upload failed: path={path}, error={e}")
            raise StorageError(f"Failed to upload file: {e}")

        return UploadResult(path=path, url=blob.url, file_id=blob.blob_name, size=len(data))

    def download_file(self, path: str) -> bytes:
        try:
            return self.container.get_blob_client(self._blob_name(path)).download_blob().readall()
        except ResourceNotFoundError:
            raise FileNotFoundError(f"File not found: {path}")
        except AzureError as e:
            raise StorageError(f"Failed to retrieve file: {e}")

    def delete_file(self, path: str) -> bool:
        try:
            self.container.get_blob_client(self._blob_name(path)).delete_blob()
            return True
        except ResourceNotFoundError:
            return False
        except AzureError as e:
            raise StorageError(f"Failed to delete file: {e}")

    def file_exists(self, path: str) -> bool:
        try:
            return self.container.get_blob_client(self._blob_name(path)).exists()
        except AzureError as e:
            raise StorageError(f"Failed to check file: {e}")

    def list_files(self, folder_path: str = "") -> List[StorageFile]:
        prefix = self._blob_name(folder_path)
        prefix = f"{prefix}/" if prefix else ""
        files: List[StorageFile] = []
        try:
            for item in self.container.walk_blobs(name_starts_with=prefix, delimiter="/"):
                name = item.name.rstrip("/")
                is_folder = item.name.endswith("/")
                files.append(StorageFile(
                    name=name.rsplit("/", 1)[-1],
                    path=self._relative(name),
                    is_folder=is_folder,
                    size=None if is_folder else getattr(item, "size", None),
                    modified_at=None if is_folder else getattr(item, "last_modified", None),
                    file_id=None if is_folder else item.name,
                ))
        except AzureError as e:
            raise StorageError(f"Failed to list files: {e}")
        return files

    def create_folder(self, folder_path: str) -> str:
        return normalize_path(folder_path)

    def get_public_url(self, path: str) -> Optional[str]:
        return self.container.get_blob_client(self._blob_name(path)).url

    def test_connection(self) -> List[ConnectionCheck]:
        checks: List[ConnectionCheck] = []
        try:
            self.container.get_container_properties()
            checks.append(ConnectionCheck("container_access", "passed", message=f"Container '{self.container_name}' is reachable"))
        except ResourceNotFoundError:
            checks.append(ConnectionCheck("container_access", "failed", error=f"Container '{self.container_name}' does not exist"))
        except AzureError as e:
            checks.append(ConnectionCheck("container_access", "failed", error=f"Cannot access container: {e}"))
        return checks
