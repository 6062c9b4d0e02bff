"""Wiring of client, store, mapper and accessor from settings."""
import logging
from typing import TYPE_CHECKING, Optional

from cloud_store.accessor.data_accessor import CloudDataAccessor
from cloud_store.config.settings import Settings, get_settings
from cloud_store.mapping.content_types import ContentTypeTable
from cloud_store.mapping.mapper import ExtensionBasedMapper
from cloud_store.s3.blob_store import S3BlobStore
from cloud_store.s3.client import get_s3_client

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)


def build_blob_store(settings: Optional[Settings] = None, client: Optional["S3Client"] = None) -> S3BlobStore:
    settings = settings or get_settings()
    client = client or get_s3_client(settings)
    return S3BlobStore(client, settings.s3_bucket_name, region=settings.aws_region)


def build_mapper(settings: Optional[Settings] = None, blob_store: Optional[S3BlobStore] = None) -> ExtensionBasedMapper:
    settings = settings or get_settings()
    return ExtensionBasedMapper(
        settings.base_url,
        blob_store or build_blob_store(settings),
        root=settings.root_prefix,
        content_types=ContentTypeTable(settings.custom_types),
        unknown_media_type_extension=settings.unknown_media_type_extension,
    )


def build_accessor(settings: Optional[Settings] = None, client: Optional["S3Client"] = None) -> CloudDataAccessor:
    """Build a CloudDataAccessor for the configured bucket.

    Args:
        settings: Settings to use, defaults to the cached process settings
        client: Pre-built S3 client, e.g. one created inside a moto mock

    Returns:
        CloudDataAccessor sharing one S3BlobStore with its mapper
    """
    settings = settings or get_settings()
    blob_store = build_blob_store(settings, client)
    mapper = build_mapper(settings, blob_store)
    logger.debug(f"Built accessor for bucket {settings.s3_bucket_name} under {settings.base_url}")
    return CloudDataAccessor(mapper, blob_store)
