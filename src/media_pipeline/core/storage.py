"""Object store adapter over an S3 compatible client (AWS S3, Cloudflare R2)."""

from typing import Any, Dict, Iterable, List, Mapping, Optional, TYPE_CHECKING
from urllib.parse import quote

from botocore.exceptions import ClientError

from .error_handling import with_error_handling
from .exceptions import StorageError
from .logging_config import get_logger

if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client
else:
    S3Client = Any

NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")

# Characters left readable when a metadata value has to be percent-encoded.
METADATA_SAFE_CHARS = " -_.:/@()"


def encode_metadata_value(value: Any) -> str:
    """
    Make a user metadata value ASCII-only.

    S3 only carries ASCII in `x-amz-meta-*` headers and botocore refuses
    anything else, so non-ASCII values (e.g. `café.jpg`) are percent-encoded
    as UTF-8. ASCII values are stored unchanged.
    """
    text = str(value)
    if text.isascii():
        return text
    return quote(text, safe=METADATA_SAFE_CHARS)


class S3BlobStore:
    """
    put/get/head/exists/delete/copy/sign over one bucket.

    The adapter holds no per-key state, so concurrent calls for different
    keys need no coordination. Every failure surfaces as StorageError.
    """

    def __init__(
        self,
        s3_client: S3Client,
        bucket: str,
        public_url: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        account_id: Optional[str] = None,
        cache_control: Optional[str] = "public, max-age=31536000",
        default_ttl: int = 3600,
    ):
        self._s3_client = s3_client
        self.bucket = bucket
        self._public_url = public_url.rstrip("/") if public_url else None
        self._endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self._account_id = account_id
        self._cache_control = cache_control
        self._default_ttl = default_ttl
        self._logger = get_logger("storage")

    def public_url(self, key: str) -> str:
        """Public URL of an object; does not check that it exists."""
        if self._public_url:
            return f"{self._public_url}/{key}"
        if self._account_id:
            return f"https://{self.bucket}.{self._account_id}.r2.cloudflarestorage.com/{key}"
        if self._endpoint_url:
            return f"{self._endpoint_url}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    @with_error_handling(StorageError)
    def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Upload an object.

        Returns:
            Dictionary with key, url, etag, size and content_type
        """
        self._logger.debug(f"Uploading s3://{self.bucket}/{key} ({len(data)} bytes)")
        params: Dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "ContentType": content_type,
            "Metadata": {k: encode_metadata_value(v) for k, v in (metadata or {}).items()},
        }
        if self._cache_control:
            params["CacheControl"] = self._cache_control
        response = self._s3_client.put_object(**params)
        return {
            "key": key,
            "url": self.public_url(key),
            "etag": response.get("ETag", ""),
            "size": len(data),
            "content_type": content_type,
        }

    @with_error_handling(StorageError)
    def get(self, key: str) -> Dict[str, Any]:
        response = self._s3_client.get_object(Bucket=self.bucket, Key=key)
        return {
            "key": key,
            "body": response["Body"].read(),
            "content_type": response.get("ContentType"),
            "content_length": response.get("ContentLength"),
            "metadata": response.get("Metadata", {}),
            "last_modified": response.get("LastModified"),
        }

    @with_error_handling(StorageError)
    def head(self, key: str) -> Dict[str, Any]:
        response = self._s3_client.head_object(Bucket=self.bucket, Key=key)
        return {
            "key": key,
            "content_type": response.get("ContentType"),
            "content_length": response.get("ContentLength"),
            "metadata": response.get("Metadata", {}),
            "last_modified": response.get("LastModified"),
            "etag": response.get("ETag", ""),
        }

    @with_error_handling(StorageError)
    def exists(self, key: str) -> bool:
        try:
            self._s3_client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if str(e.response.get("Error", {}).get("Code")) in NOT_FOUND_CODES:
                return False
            raise
        return True

    @with_error_handling(StorageError)
    def delete(self, key: str) -> None:
        self._logger.debug(f"Deleting s3://{self.bucket}/{key}")
        self._s3_client.delete_object(Bucket=self.bucket, Key=key)

    def delete_many(self, keys: Iterable[str]) -> List[Dict[str, Any]]:
        """Delete several objects; one failure does not stop the others."""
        results = []
        for key in keys:
            try:
                self.delete(key)
                results.append({"key": key, "success": True})
            except StorageError as e:
                results.append({"key": key, "success": False, "error": str(e)})
        return results

    @with_error_handling(StorageError)
    def copy(self, source_key: str, destination_key: str) -> Dict[str, Any]:
        response = self._s3_client.copy_object(
            Bucket=self.bucket,
            Key=destination_key,
            CopySource={"Bucket": self.bucket, "Key": source_key},
        )
        return {
            "source_key": source_key,
            "destination_key": destination_key,
            "etag": response.get("CopyObjectResult", {}).get("ETag", ""),
        }

    @with_error_handling(StorageError)
    def sign(
        self,
        key: str,
        ttl: Optional[int] = None,
        upload: bool = False,
        content_type: Optional[str] = None,
    ) -> str:
        """Presigned URL for downloading, or uploading when ``upload`` is set."""
        params: Dict[str, Any] = {"Bucket": self.bucket, "Key": key}
        if upload and content_type:
            params["ContentType"] = content_type
        return self._s3_client.generate_presigned_url(
            ClientMethod="put_object" if upload else "get_object",
            Params=params,
            ExpiresIn=ttl or self._default_ttl,
        )
