"""S3 blob store (aioboto3)."""

from dataclasses import dataclass
from typing import Optional

import aioboto3
from botocore.exceptions import ClientError, ConnectionClosedError, EndpointConnectionError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .._utils import join_path, logger
from ..base import BaseBlobStore, BlobNotFoundError

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}

s3_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((EndpointConnectionError, ConnectionClosedError)),
    reraise=True,
)


def _is_not_found(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code")) in _NOT_FOUND_CODES


@dataclass
class S3BlobStore(BaseBlobStore):
    def __post_init__(self):
        self.bucket = self.global_config.get("s3_bucket")
        if not self.bucket:
            raise ValueError("S3 blob store requires 's3_bucket'")
        self.region = self.global_config.get("s3_region", "us-east-1")
        self.endpoint_url = self.global_config.get("s3_endpoint_url")
        self.url_expiry = self.global_config.get("s3_url_expiry_seconds", 604800)
        self.session = aioboto3.Session()

    def _client(self):
        return self.session.client("s3", region_name=self.region, endpoint_url=self.endpoint_url)

    @s3_retry
    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        content_disposition: Optional[str] = None,
    ) -> str:
        key = join_path(path)
        params = {"Bucket": self.bucket, "Key": key, "Body": data, "ContentType": content_type}
        if content_disposition:
            params["ContentDisposition"] = content_disposition

        async with self._client() as s3:
            await s3.put_object(**params)
            url = await s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=self.url_expiry,
            )

        logger.info(f"Uploaded s3://{self.bucket}/{key} ({len(data):,} bytes)")
        return url

    @s3_retry
    async def get(self, path: str) -> bytes:
        key = join_path(path)
        async with self._client() as s3:
            try:
                response = await s3.get_object(Bucket=self.bucket, Key=key)
            except ClientError as e:
                if _is_not_found(e):
                    raise BlobNotFoundError(path) from e
                raise
            async with response["Body"] as stream:
                return await stream.read()

    @s3_retry
    async def delete(self, path: str) -> bool:
        key = join_path(path)
        async with self._client() as s3:
            # delete_object succeeds for missing keys, so probe first to report absence
            try:
                await s3.head_object(Bucket=self.bucket, Key=key)
            except ClientError as e:
                if _is_not_found(e):
                    return False
                raise
            await s3.delete_object(Bucket=self.bucket, Key=key)
        return True

    async def check_health(self) -> bool:
        try:
            async with self._client() as s3:
                await s3.head_bucket(Bucket=self.bucket)
            return True
        except Exception as e:
            logger.warning(f"S3 health check failed: {e}")
            return False
