from cloud_store.accessor.data_accessor import CloudDataAccessor, DataAccessor
from cloud_store.accessor.metadata import (
    Attribute,
    JsonSidecarCodec,
    MetadataRecord,
    SidecarCodec,
)

__all__ = [
    "Attribute",
    "CloudDataAccessor",
    "DataAccessor",
    "JsonSidecarCodec",
    "MetadataRecord",
    "SidecarCodec",
]
