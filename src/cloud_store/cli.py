# cli.py
import asyncio
import logging

import click

from cloud_store.accessor.metadata import MetadataRecord
from cloud_store.config.settings import get_settings
from cloud_store.errors import CloudStoreError
from cloud_store.factory import build_accessor
from cloud_store.schemas import ResourceIdentifier

# Configure logging
logger = logging.getLogger(__name__)


def _identifier(path: str) -> ResourceIdentifier:
    """Accept absolute identifiers or paths relative to the configured base."""
    if "://" in path:
        return ResourceIdentifier(path=path)
    return ResourceIdentifier(path=f"{get_settings().base_url}{path.lstrip('/')}")


def _run(coroutine):
    try:
        return asyncio.run(coroutine)
    except CloudStoreError as e:
        raise click.ClickException(f"{e.status_code} {e.message}") from e


@click.group()
@click.option("--log-level", default=None, help="Override the configured log level")
def cli(log_level):
    """CLI commands for the cloud resource store"""
    logging.basicConfig(
        level=(log_level or get_settings().log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:")
    click.echo(f"  Deployment Mode: {settings.deployment_mode}")
    click.echo(f"  Base URL: {settings.base_url}")
    click.echo(f"  Root Prefix: {settings.root_prefix}")
    click.echo(f"  AWS Region: {settings.aws_region}")
    click.echo(f"  AWS Endpoint: {settings.aws_endpoint_url}")
    click.echo(f"  S3 Bucket: {settings.s3_bucket_name}")
    click.echo(f"  Custom Types: {settings.custom_types}")


@cli.command()
def init_bucket():
    """Create the bucket and the root container"""
    async def _init():
        accessor = build_accessor()
        await accessor.blob_store.ensure_bucket()
        root = _identifier("")
        await accessor.write_container(root, MetadataRecord(root.path))
        return root

    root = _run(_init())
    click.echo(f"Initialized {get_settings().s3_bucket_name} with root container {root.path}")


@cli.command()
@click.argument("path", default="")
def ls(path):
    """List the members of a container"""
    async def _ls():
        accessor = build_accessor()
        return [record.identifier async for record in accessor.get_children(_identifier(path))]

    for child in _run(_ls()):
        click.echo(child)


@cli.command()
@click.argument("path")
def stat(path):
    """Show the metadata of a resource"""
    record = _run(build_accessor().get_metadata(_identifier(path)))
    for attribute in record:
        graph = f" [{attribute.graph}]" if attribute.graph else ""
        click.echo(f"{attribute.predicate} {attribute.value}{graph}")


@cli.command()
@click.argument("path")
def cat(path):
    """Print the data of a document"""
    async def _cat():
        async with await build_accessor().get_data(_identifier(path)) as stream:
            return await stream.read()

    click.echo(_run(_cat()), nl=False)


@cli.command()
@click.argument("path")
@click.argument("file", type=click.File("rb"))
@click.option("--content-type", default=None, help="Content type of the document, guessed from PATH if omitted")
def put(path, file, content_type):
    """Upload FILE as the document at PATH"""
    identifier = _identifier(path)
    accessor = build_accessor()
    metadata = MetadataRecord(identifier.path)
    metadata.content_type = content_type or accessor.mapper.content_types.content_type_from_path(identifier.path)

    _run(accessor.write_document(identifier, file.read(), metadata))
    click.echo(f"Stored {identifier.path} ({metadata.content_type})")


@cli.command()
@click.argument("path")
def mkdir(path):
    """Create a container"""
    if not path.endswith("/"):
        path = f"{path}/"
    identifier = _identifier(path)
    _run(build_accessor().write_container(identifier, MetadataRecord(identifier.path)))
    click.echo(f"Created {identifier.path}")


@cli.command()
@click.argument("path")
def rm(path):
    """Delete a resource and its metadata"""
    identifier = _identifier(path)
    _run(build_accessor().delete_resource(identifier))
    click.echo(f"Deleted {identifier.path}")


if __name__ == "__main__":
    cli()
