"""S3 client construction from settings."""
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

import boto3

from cloud_store.config.settings import Settings, get_settings

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)

# One client per distinct connection configuration
_CLIENTS: Dict[Tuple, Any] = {}


def get_s3_client(settings: Optional[Settings] = None) -> "S3Client":
    """Get or create an S3 client for the configured endpoint.

    :param settings: Settings to build the client from. Defaults to the cached process settings.
    :return: A boto3 S3 client, shared between callers with the same configuration.
    """
    settings = settings or get_settings()
    cache_key = (
        settings.aws_region,
        settings.aws_endpoint_url,
        settings.aws_access_key_id,
        settings.aws_secret_access_key,
    )
    if cache_key in _CLIENTS:
        return _CLIENTS[cache_key]

    client_kwargs = {
        'region_name': settings.aws_region,
    }
    if settings.aws_access_key_id:
        client_kwargs['aws_access_key_id'] = settings.aws_access_key_id
    if settings.aws_secret_access_key:
        client_kwargs['aws_secret_access_key'] = settings.aws_secret_access_key
    if settings.aws_endpoint_url and settings.deployment_mode in ['local-dev', 'aws-mock']:
        client_kwargs['endpoint_url'] = settings.aws_endpoint_url

    try:
        client = boto3.client('s3', **client_kwargs)
    except Exception as e:
        logger.error(f"Error creating s3 client: {str(e)}")
        raise

    _CLIENTS[cache_key] = client
    logger.debug(f"Created s3 client (mode={settings.deployment_mode}, endpoint={settings.aws_endpoint_url})")
    return client


def clear_clients() -> None:
    """Clear all cached clients."""
    _CLIENTS.clear()
    logger.debug("Cleared all S3 clients")
