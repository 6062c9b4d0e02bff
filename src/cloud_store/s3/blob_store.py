"""
Object storage primitives over a single bucket.

The bucket has no directories. A container is emulated by a marker object at
`<container key>.meta` (e.g. `root/docs/.meta`), which doubles as the
container's metadata sidecar. Listing uses `/` as a delimiter so only the
immediate members of a container are returned.
"""

import asyncio
import logging
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterable,
    AsyncIterator,
    BinaryIO,
    Iterable,
    List,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from botocore.exceptions import BotoCoreError, ClientError

from cloud_store.errors import NotFoundError, StorageError, is_not_found
from cloud_store.schemas import CONTAINER_SEPARATOR, METADATA_SUFFIX, BlobStat

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

BinaryData = Union[bytes, bytearray, BinaryIO, Iterable[bytes], AsyncIterable[bytes]]


def container_marker_key(key: str) -> str:
    """Return the marker object that signals a container exists at `key`."""
    if not key.endswith(CONTAINER_SEPARATOR):
        key = f"{key}{CONTAINER_SEPARATOR}"
    return f"{key}{METADATA_SUFFIX}"


def _as_bytes(chunk: Union[bytes, bytearray, str]) -> bytes:
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    return bytes(chunk)


async def read_body(body: BinaryData) -> bytes:
    """Drain a body into bytes.

    Errors raised by the body itself (a failing stream) propagate unchanged.
    """
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if hasattr(body, "__aiter__"):
        return b"".join([_as_bytes(chunk) async for chunk in body])
    if hasattr(body, "read"):
        return _as_bytes(await asyncio.to_thread(body.read))
    return b"".join(_as_bytes(chunk) for chunk in body)


class BlobStream:
    """Readable handle on one stored object.

    Use as an async context manager so the underlying HTTP connection is
    always released:

        async with await store.get_object(key) as stream:
            data = await stream.read()
    """

    def __init__(self, key: str, body: Any):
        self.key = key
        self._body = body
        self.closed = False

    async def read(self, amt: Optional[int] = None) -> bytes:
        """Read up to `amt` bytes, or everything that is left."""
        return await asyncio.to_thread(self._body.read, amt)

    async def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.read(chunk_size)
            if not chunk:
                break
            yield chunk

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.iter_chunks()

    def close(self) -> None:
        if not self.closed:
            self._body.close()
            self.closed = True

    async def __aenter__(self) -> "BlobStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


@runtime_checkable
class BlobStore(Protocol):
    """Operations the mapper and accessor need from an object store."""

    async def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet."""
        ...

    async def put_object(self, key: str, body: BinaryData) -> bool:
        """Write an object. Return ``False`` instead of raising on backend failure."""
        ...

    async def write_object(self, key: str, body: BinaryData) -> None:
        """Write an object, raising on any failure."""
        ...

    async def get_object(self, key: str) -> BlobStream:
        """Open an object for reading. Raise NotFoundError when absent."""
        ...

    async def stat_object(self, key: str) -> BlobStat:
        """Stat an object or container marker. Raise NotFoundError when absent."""
        ...

    async def list_objects(self, prefix: str) -> List[str]:
        """List keys and sub-container prefixes directly under `prefix`."""
        ...

    async def delete_object(self, key: str) -> bool:
        """Delete an object. Return ``False`` when it was absent."""
        ...

    async def write_container_marker(self, key: str, content: bytes = b"") -> bool:
        """Create a container marker. Return ``False`` if it already existed, raise on backend failure."""
        ...


class S3BlobStore:
    """BlobStore backed by a boto3 S3 client (AWS, MinIO or moto)."""

    def __init__(
        self,
        client: "S3Client",
        bucket: str,
        *,
        region: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.bucket = bucket
        self.region = region or client.meta.region_name
        self.logger = logger or logging.getLogger(__name__)
        self._bucket_ready = False

    async def _call(self, operation: str, **kwargs) -> Any:
        """Run one blocking client operation off the event loop."""
        return await asyncio.to_thread(getattr(self.client, operation), **kwargs)

    async def ensure_bucket(self) -> None:
        if self._bucket_ready:
            return
        try:
            try:
                await self._call("head_bucket", Bucket=self.bucket)
            except ClientError as e:
                if not is_not_found(e):
                    raise
                create_kwargs = {"Bucket": self.bucket}
                if self.region and self.region != "us-east-1":
                    create_kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
                try:
                    await self._call("create_bucket", **create_kwargs)
                    self.logger.info(f"Created bucket: {self.bucket}")
                except ClientError as create_error:
                    # Lost the race against another writer creating the same bucket
                    code = create_error.response.get("Error", {}).get("Code")
                    if code != "BucketAlreadyOwnedByYou":
                        raise
            self._bucket_ready = True
        except (ClientError, BotoCoreError) as e:
            self.logger.error(f"Failed to create bucket: {self.bucket}. {e}")
            raise StorageError(f"Failed to create bucket: {self.bucket}. {e}", cause=e) from e

    async def _put(self, key: str, payload: bytes) -> None:
        try:
            await self._call("put_object", Bucket=self.bucket, Key=key, Body=payload)
        except (ClientError, BotoCoreError) as e:
            self.logger.error(f"Failed to write: {key}. {e}")
            raise StorageError(f"Failed to write: {key}. {e}", cause=e) from e

    async def write_object(self, key: str, body: BinaryData) -> None:
        await self.ensure_bucket()
        payload = await read_body(body)
        await self._put(key, payload)

    async def put_object(self, key: str, body: BinaryData) -> bool:
        await self.ensure_bucket()
        payload = await read_body(body)
        try:
            await self._put(key, payload)
        except StorageError:
            return False
        return True

    async def get_object(self, key: str) -> BlobStream:
        await self.ensure_bucket()
        try:
            response = await self._call("get_object", Bucket=self.bucket, Key=key)
        except ClientError as e:
            if is_not_found(e):
                self.logger.debug(f"Failed to read: {key}. {e}")
                raise NotFoundError(f"Failed to read: {key}. {e}", cause=e) from e
            self.logger.error(f"Failed to read: {key}. {e}")
            raise StorageError(f"Failed to read: {key}. {e}", cause=e) from e
        return BlobStream(key, response["Body"])

    async def stat_object(self, key: str) -> BlobStat:
        await self.ensure_bucket()
        is_container = key.endswith(CONTAINER_SEPARATOR)
        target = container_marker_key(key) if is_container else key
        try:
            response = await self._call("head_object", Bucket=self.bucket, Key=target)
        except ClientError as e:
            if is_not_found(e):
                self.logger.debug(f"Failed to stat: {target}. {e}")
                raise NotFoundError(f"Failed to stat: {target}. {e}", cause=e) from e
            self.logger.error(f"Failed to stat: {target}. {e}")
            raise StorageError(f"Failed to stat: {target}. {e}", cause=e) from e

        etag = response.get("ETag")
        return BlobStat(
            size=response.get("ContentLength", 0),
            last_modified=response["LastModified"],
            etag=etag.strip('"') if etag else None,
            is_container=is_container,
        )

    async def object_exists(self, key: str) -> bool:
        try:
            await self.stat_object(key)
        except NotFoundError:
            return False
        return True

    def _list_pages(self, prefix: str) -> List[dict]:
        paginator = self.client.get_paginator("list_objects_v2")
        return list(paginator.paginate(Bucket=self.bucket, Prefix=prefix, Delimiter=CONTAINER_SEPARATOR))

    async def list_objects(self, prefix: str) -> List[str]:
        await self.ensure_bucket()
        if not prefix.endswith(CONTAINER_SEPARATOR):
            prefix = f"{prefix}{CONTAINER_SEPARATOR}"
        marker = container_marker_key(prefix)

        try:
            pages = await asyncio.to_thread(self._list_pages, prefix)
        except ClientError as e:
            self.logger.error(f"Failed to list: {prefix}. {e}")
            if is_not_found(e):
                raise NotFoundError(f"Failed to list: {prefix}. {e}", cause=e) from e
            raise StorageError(f"Failed to list: {prefix}. {e}", cause=e) from e

        keys: List[str] = []
        for page in pages:
            for item in page.get("Contents", []):
                name = item["Key"]
                if name not in (prefix, marker):
                    keys.append(name)
            for common_prefix in page.get("CommonPrefixes", []):
                keys.append(common_prefix["Prefix"])
        return keys

    async def delete_object(self, key: str) -> bool:
        target = container_marker_key(key) if key.endswith(CONTAINER_SEPARATOR) else key
        try:
            await self._call("head_object", Bucket=self.bucket, Key=target)
            await self._call("delete_object", Bucket=self.bucket, Key=target)
        except (ClientError, BotoCoreError) as e:
            self.logger.debug(f"Failed to delete: {target}. {e}")
            return False
        return True

    async def write_container_marker(self, key: str, content: bytes = b"") -> bool:
        await self.ensure_bucket()
        marker = container_marker_key(key)
        if await self.object_exists(marker):
            return False
        await self.write_object(marker, content)
        return True
