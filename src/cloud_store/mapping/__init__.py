"""Identifier to storage key mapping."""

from cloud_store.mapping.content_types import (
    APPLICATION_OCTET_STREAM,
    ContentType,
    ContentTypeTable,
    get_extension,
    parse_content_type,
)
from cloud_store.mapping.mapper import ExtensionBasedMapper, ResourceMapper

__all__ = [
    "APPLICATION_OCTET_STREAM",
    "ContentType",
    "ContentTypeTable",
    "ExtensionBasedMapper",
    "ResourceMapper",
    "get_extension",
    "parse_content_type",
]
