import hashlib
import json
import logging
from typing import Protocol

import boto3
import httpx
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings

logger = logging.getLogger(__name__)


class BlobStoreError(Exception):
    """The blob store could not be reached or refused the operation."""


class BlobStore(Protocol):
    def put(self, data: bytes, file_name: str) -> str: ...

    def get(self, address: str) -> bytes: ...


class PinataBlobStore:
    """Pins ciphertext to IPFS through Pinata; reads back via the gateway."""

    def __init__(
        self,
        jwt: str,
        api_url: str,
        gateway_url: str,
        timeout: float,
        transport: httpx.BaseTransport | None = None,
    ):
        self.jwt = jwt
        self.api_url = api_url
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def put(self, data: bytes, file_name: str) -> str:
        if not self.jwt:
            raise BlobStoreError("Pinata is not configured. Set PINATA_JWT.")
        files = {"file": (file_name, data, "application/octet-stream")}
        form = {"pinataMetadata": json.dumps({"name": file_name})}
        headers = {"Authorization": f"Bearer {self.jwt}"}
        try:
            with self._client() as client:
                resp = client.post(self.api_url, files=files, data=form, headers=headers)
            resp.raise_for_status()
            cid = resp.json().get("IpfsHash")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Pinata upload of %s failed: %s", file_name, e)
            raise BlobStoreError(f"IPFS upload failed: {e}") from e
        if not cid:
            raise BlobStoreError("IPFS upload returned no content address")
        logger.info("Pinned %s as %s", file_name, cid)
        return cid

    def get(self, address: str) -> bytes:
        try:
            with self._client() as client:
                resp = client.get(f"{self.gateway_url}/{address}")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("IPFS fetch of %s failed: %s", address, e)
            raise BlobStoreError(f"IPFS fetch failed: {e}") from e
        return resp.content


class S3BlobStore:
    """Content-addressed blobs in an S3/MinIO bucket keyed by ciphertext hash."""

    def __init__(
        self,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str,
    ):
        self.endpoint_url = endpoint_url
        self.access_key = access_key
        self.secret_key = secret_key
        self.bucket_name = bucket_name
        self.region = region

    def is_configured(self) -> bool:
        return bool(self.endpoint_url and self.access_key and self.secret_key)

    def _get_client(self):  # type: ignore[return]
        if not self.is_configured():
            raise BlobStoreError(
                "S3 storage is not configured. "
                "Set S3_ENDPOINT_URL, S3_ACCESS_KEY, and S3_SECRET_KEY."
            )
        return boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region,
            config=Config(signature_version="s3v4", retries={"max_attempts": 1}),
        )

    @staticmethod
    def generate_storage_key(data: bytes) -> str:
        return f"blobs/{hashlib.sha256(data).hexdigest()}"

    def put(self, data: bytes, file_name: str) -> str:
        client = self._get_client()
        key = self.generate_storage_key(data)
        try:
            client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType="application/octet-stream",
                Metadata={"file-name": file_name},
            )
        except (BotoCoreError, ClientError) as e:
            logger.warning("S3 upload of %s failed: %s", file_name, e)
            raise BlobStoreError(f"S3 upload failed: {e}") from e
        logger.info("Stored %s as %s", file_name, key)
        return key

    def get(self, address: str) -> bytes:
        client = self._get_client()
        try:
            obj = client.get_object(Bucket=self.bucket_name, Key=address)
            return obj["Body"].read()
        except (BotoCoreError, ClientError) as e:
            logger.warning("S3 fetch of %s failed: %s", address, e)
            raise BlobStoreError(f"S3 fetch failed: {e}") from e


def build_blob_store() -> BlobStore:
    backend = settings.blob_store_backend.strip().lower()
    if backend == "s3":
        return S3BlobStore(
            endpoint_url=settings.s3_endpoint_url,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
            bucket_name=settings.s3_bucket_name,
            region=settings.s3_region,
        )
    if backend == "pinata":
        return PinataBlobStore(
            jwt=settings.pinata_jwt,
            api_url=settings.pinata_api_url,
            gateway_url=settings.pinata_gateway_url,
            timeout=settings.blob_timeout_seconds,
        )
    raise ValueError(f"Unsupported BLOB_STORE_BACKEND: {settings.blob_store_backend}")
