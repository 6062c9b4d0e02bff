import boto3
from click.testing import CliRunner

from cloud_store.cli import cli
from tests.consts import TEST_BUCKET_NAME, TEST_REGION


def invoke(*args, input=None):
    return CliRunner().invoke(cli, list(args), input=input)


def test_show_config(aws_credentials):
    result = invoke("show-config")

    assert result.exit_code == 0
    assert "Deployment Mode: aws-prod" in result.output
    assert f"S3 Bucket: {TEST_BUCKET_NAME}" in result.output


def test_document_lifecycle(mocked_aws, tmp_path):
    upload = tmp_path / "notes.txt"
    upload.write_bytes(b"Hello, world!")

    assert invoke("init-bucket").exit_code == 0
    assert invoke("mkdir", "docs").exit_code == 0

    result = invoke("put", "docs/notes.txt", str(upload))
    assert result.exit_code == 0
    assert "text/plain" in result.output

    result = invoke("put", "docs/notes.ttl.txt", str(upload), "--content-type", "text/turtle")
    assert result.exit_code == 0

    result = invoke("ls", "docs/")
    assert result.output.splitlines() == [
        "http://test.com/docs/notes.ttl.txt",
        "http://test.com/docs/notes.txt",
    ]

    result = invoke("cat", "docs/notes.txt")
    assert result.output == "Hello, world!"

    result = invoke("stat", "docs/notes.txt")
    assert "http://www.w3.org/ns/posix/stat#size 13" in result.output

    assert invoke("rm", "docs/notes.txt").exit_code == 0
    s3_client = boto3.client("s3", region_name=TEST_REGION)
    keys = [obj["Key"] for obj in s3_client.list_objects_v2(Bucket=TEST_BUCKET_NAME).get("Contents", [])]
    assert sorted(keys) == ["root/.meta", "root/docs/.meta", "root/docs/notes.ttl.txt$.ttl"]


def test_missing_resource_reports_status(mocked_aws):
    result = invoke("cat", "missing.txt")

    assert result.exit_code != 0
    assert "404" in result.output
