"""Object Store Adapter - S3-compatible storage using boto3.

Works with AWS S3, MinIO and other S3-compatible services. Keys are
"{prefix}/{path}"; folders are implicit in S3, so create_folder only
normalizes the path.
"""

import logging
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from .port import ConnectionCheck, StorageAdapter, StorageError, StorageFile, UploadResult, join_path, normalize_path

logger = logging.getLogger(__name__)

CONNECTION_TEST_KEY = ".docuflow-connection-test"
NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "Unknown")


class ObjectStoreAdapter(StorageAdapter):
    """S3-compatible storage adapter.

    Example:
        storage = ObjectStoreAdapter(
            bucket_name="docuflow",
            access_key="minioadmin",
            secret_key="minioadmin",
            endpoint_url="http://localhost:9000",
            prefix=str(org_id),
        )
    """

    provider = "object_store"

    def __init__(
        self,
        bucket_name: str,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        region: str = "us-east-1",
        prefix: str = "",
        client=None,
    ):
        """Initialize the adapter.

        Args:
            bucket_name: S3 bucket name
            access_key: S3 access key ID (None: default boto3 credential chain)
            secret_key: S3 secret access key
            endpoint_url: S3 endpoint URL (None for AWS S3, URL for MinIO)
            region: AWS region
            prefix: Key prefix all paths live under
            client: Pre-built boto3 S3 client

        Raises:
            StorageError: If S3 client initialization fails
        """
        try:
            self.s3_client = client or boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
        except (BotoCoreError, NoCredentialsError) as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

        self.bucket_name = bucket_name
        self.prefix = normalize_path(prefix)
        self.endpoint_url = endpoint_url

    def _key(self, path: str) -> str:
        return join_path(self.prefix, path)

    def _relative(self, key: str) -> str:
        if self.prefix and key.startswith(self.prefix + "/"):
            return key[len(self.prefix) + 1:]
        return key

    def _upload(self, data: bytes, path: str, content_type: str, metadata: Dict[str, str], overwrite: bool) -> UploadResult:
        key = self._key(path)
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata={str(k): str(v) for k, v in metadata.items()},
            )
        except ClientError as e:
            logger.error(f"S3 upload failed: key={key}, error={_error_code(e)}")
            raise StorageError(f"Failed to upload file: {_error_code(e)}")
        except BotoCoreError as e:
            logger.error(f"S3 upload failed: key={key}, error={e}")
            raise StorageError(f"Failed to upload file: {e}")

        return UploadResult(path=path, url=f"s3://{self.bucket_name}/{key}", file_id=key, size=len(data))

    def download_file(self, path: str) -> bytes:
        key = self._key(path)
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                raise FileNotFoundError(f"File not found: {path}")
            raise StorageError(f"Failed to retrieve file: {_error_code(e)}")

    def delete_file(self, path: str) -> bool:
        if not self.file_exists(path):
            logger.info(f"File not found for deletion: path={path}")
            return False
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=self._key(path))
        except ClientError as e:
            raise StorageError(f"Failed to delete file: {_error_code(e)}")
        return True

    def file_exists(self, path: str) -> bool:
        """HEAD the key; any error other than not-found is raised."""
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=self._key(path))
            return True
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                return False
            raise StorageError(f"Failed to check file: {_error_code(e)}")

    def list_files(self, folder_path: str = "") -> List[StorageFile]:
        prefix = self._key(folder_path)
        prefix = f"{prefix}/" if prefix else ""
        files: List[StorageFile] = []

        try:
            paginator = self.s3_client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix, Delimiter="/"):
                for common in page.get("CommonPrefixes", []):
                    key = common["Prefix"].rstrip("/")
                    files.append(StorageFile(name=key.rsplit("/", 1)[-1], path=self._relative(key), is_folder=True))
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    if key.endswith("/"):
                        continue
                    files.append(StorageFile(
                        name=key.rsplit("/", 1)[-1],
                        path=self._relative(key),
                        size=obj.get("Size"),
                        modified_at=obj.get("LastModified"),
                        file_id=key,
                    ))
        except ClientError as e:
            raise StorageError(f"Failed to list files: {_error_code(e)}")

        return files

    def create_folder(self, folder_path: str) -> str:
        return normalize_path(folder_path)

    def get_public_url(self, path: str, expires_in_seconds: int = 3600) -> Optional[str]:
        """Presigned GET URL for the object."""
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": self._key(path)},
                ExpiresIn=expires_in_seconds,
            )
        except ClientError as e:
            raise StorageError(f"Failed to generate presigned URL: {_error_code(e)}")

    def test_connection(self) -> List[ConnectionCheck]:
        checks: List[ConnectionCheck] = []

        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            checks.append(ConnectionCheck("bucket_access", "passed", message=f"Bucket '{self.bucket_name}' is reachable"))
        except (ClientError, BotoCoreError) as e:
            code = _error_code(e) if isinstance(e, ClientError) else str(e)
            checks.append(ConnectionCheck("bucket_access", "failed", error=f"Cannot access bucket: {code}"))
            checks.append(ConnectionCheck("write_access", "skipped", message="Bucket not reachable"))
            return checks

        key = self._key(CONNECTION_TEST_KEY)
        try:
            self.s3_client.put_object(Bucket=self.bucket_name, Key=key, Body=b"ok")
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            checks.append(ConnectionCheck("write_access", "passed", message="Test object written and removed"))
        except (ClientError, BotoCoreError) as e:
            code = _error_code(e) if isinstance(e, ClientError) else str(e)
            checks.append(ConnectionCheck("write_access", "failed", error=f"Cannot write to bucket: {code}"))

        return checks
