"""Shared fixtures: a moto-mocked bucket and the components built on top of it."""
import boto3
import pytest
from moto import mock_aws

from cloud_store.accessor.data_accessor import CloudDataAccessor
from cloud_store.config.settings import get_settings
from cloud_store.mapping.content_types import ContentTypeTable
from cloud_store.mapping.mapper import ExtensionBasedMapper
from cloud_store.s3.blob_store import S3BlobStore
from cloud_store.s3.client import clear_clients
from tests.consts import TEST_BASE_URL, TEST_BUCKET_NAME, TEST_REGION, TEST_ROOT


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials and settings so nothing can reach a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)
    monkeypatch.setenv("DEPLOYMENT_MODE", "aws-prod")
    monkeypatch.setenv("S3_BUCKET_NAME", TEST_BUCKET_NAME)
    monkeypatch.setenv("BASE_URL", TEST_BASE_URL)
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)
    get_settings.cache_clear()
    clear_clients()
    yield
    get_settings.cache_clear()
    clear_clients()


@pytest.fixture
def mocked_aws(aws_credentials):
    """Mock all AWS calls and provide an empty test bucket."""
    with mock_aws():
        s3_client = boto3.client("s3", region_name=TEST_REGION)
        s3_client.create_bucket(Bucket=TEST_BUCKET_NAME)

        yield

        # Clean up: delete everything in the bucket, then the bucket itself
        paginator = s3_client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=TEST_BUCKET_NAME):
            for obj in page.get("Contents", []):
                s3_client.delete_object(Bucket=TEST_BUCKET_NAME, Key=obj["Key"])
        s3_client.delete_bucket(Bucket=TEST_BUCKET_NAME)


@pytest.fixture
def s3_client(mocked_aws):
    return boto3.client("s3", region_name=TEST_REGION)


@pytest.fixture
def blob_store(s3_client) -> S3BlobStore:
    return S3BlobStore(s3_client, TEST_BUCKET_NAME)


@pytest.fixture
def mapper(blob_store) -> ExtensionBasedMapper:
    return ExtensionBasedMapper(TEST_BASE_URL, blob_store, root=TEST_ROOT)


@pytest.fixture
def custom_mapper(blob_store) -> ExtensionBasedMapper:
    return ExtensionBasedMapper(
        TEST_BASE_URL,
        blob_store,
        root=TEST_ROOT,
        content_types=ContentTypeTable({"cstm": "text/custom"}),
    )


@pytest.fixture
def accessor(mapper, blob_store) -> CloudDataAccessor:
    return CloudDataAccessor(mapper, blob_store)
