"""Object storage layer: boto3 client construction and the bucket-level BlobStore."""

from cloud_store.s3.blob_store import BlobStore, BlobStream, S3BlobStore, container_marker_key
from cloud_store.s3.client import get_s3_client

__all__ = ["BlobStore", "BlobStream", "S3BlobStore", "container_marker_key", "get_s3_client"]
