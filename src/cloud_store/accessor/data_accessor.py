"""
Resource CRUD over a bucket.

The accessor combines a ResourceMapper, which decides where a resource lives,
with a BlobStore, which moves the bytes. Descriptive metadata is split in two:
facts derived from storage (type tags, size, modification time) are computed
on every read, everything else lives in the resource's `.meta` sidecar.
"""

import logging
from datetime import timezone
from typing import AsyncIterator, Dict, Optional, Protocol, runtime_checkable

from cloud_store.accessor.metadata import (
    MetadataRecord,
    SidecarCodec,
    codec_for,
    default_codecs,
)
from cloud_store.accessor.vocabulary import (
    CONTENT_TYPE,
    DC_MODIFIED,
    LDP_BASIC_CONTAINER,
    LDP_CONTAINER,
    LDP_RESOURCE,
    POSIX_MTIME,
    POSIX_SIZE,
    RDF_TYPE,
    RESPONSE_METADATA,
    STORAGE_TYPE_TAGS,
    XSD_DATE_TIME,
    XSD_INTEGER,
    media_type_iri,
)
from cloud_store.errors import (
    BadRequestError,
    CloudStoreError,
    NotFoundError,
    UnsupportedMediaTypeError,
)
from cloud_store.mapping.content_types import parse_content_type
from cloud_store.mapping.mapper import ResourceMapper
from cloud_store.s3.blob_store import BinaryData, BlobStore, BlobStream
from cloud_store.schemas import (
    CONTAINER_SEPARATOR,
    METADATA_SUFFIX,
    BlobStat,
    Representation,
    ResourceIdentifier,
    ResourceLink,
)
from cloud_store.utils.decorators import async_gen_log_execution_time, async_log_execution_time

# Predicates whose values are always recomputed from storage
STORAGE_PREDICATES = (DC_MODIFIED, POSIX_MTIME, POSIX_SIZE)


@runtime_checkable
class DataAccessor(Protocol):
    """Reads and writes resources for the protocol layer."""

    async def can_handle(self, representation: Representation) -> None:
        ...

    async def get_data(self, identifier: ResourceIdentifier) -> BlobStream:
        ...

    async def get_metadata(self, identifier: ResourceIdentifier) -> MetadataRecord:
        ...

    def get_children(self, identifier: ResourceIdentifier) -> AsyncIterator[MetadataRecord]:
        ...

    async def write_document(self, identifier: ResourceIdentifier, data: BinaryData, metadata: MetadataRecord) -> None:
        ...

    async def write_container(self, identifier: ResourceIdentifier, metadata: MetadataRecord) -> None:
        ...

    async def write_metadata(self, identifier: ResourceIdentifier, metadata: MetadataRecord) -> None:
        ...

    async def delete_resource(self, identifier: ResourceIdentifier) -> None:
        ...


class CloudDataAccessor:
    """DataAccessor that stores resources as objects in an S3 bucket."""

    def __init__(
        self,
        mapper: ResourceMapper,
        blob_store: BlobStore,
        *,
        codecs: Optional[Dict[str, SidecarCodec]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.mapper = mapper
        self.blob_store = blob_store
        self.codecs = codecs if codecs is not None else default_codecs()
        self.logger = logger or logging.getLogger(__name__)

    async def can_handle(self, representation: Representation) -> None:
        """Only binary data can be stored.

        Raises:
            UnsupportedMediaTypeError: The representation is not binary
        """
        if not representation.binary:
            raise UnsupportedMediaTypeError("Only binary data is supported.")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @async_log_execution_time
    async def get_data(self, identifier: ResourceIdentifier) -> BlobStream:
        """Open the stored bytes of a document.

        Close the returned stream, preferably with ``async with``.

        Raises:
            NotFoundError: The identifier is a container or nothing is stored
        """
        if identifier.is_container:
            raise NotFoundError(f"{identifier.path} is a container and has no data")
        link = await self.mapper.resolve_to_storage(identifier)
        return await self.blob_store.get_object(link.storage_key)

    @async_log_execution_time
    async def get_metadata(self, identifier: ResourceIdentifier) -> MetadataRecord:
        """Build the metadata record of a resource from its sidecar and its stats.

        Raises:
            NotFoundError: The resource does not exist
        """
        link = await self.mapper.resolve_to_storage(identifier)
        stats = await self.blob_store.stat_object(link.storage_key)

        record = await self._read_sidecar(identifier)
        self._add_storage_metadata(record, stats, identifier.is_container)
        if not identifier.is_container and record.content_type is None and link.content_type:
            record.content_type = link.content_type
        return record

    @async_gen_log_execution_time
    async def get_children(self, identifier: ResourceIdentifier) -> AsyncIterator[MetadataRecord]:
        """Yield a metadata record for each direct member of a container.

        Sidecars are not members. Members that cannot be stat'ed are skipped.
        """
        link = await self.mapper.resolve_to_storage(identifier)
        entries = await self.blob_store.list_objects(link.storage_key)

        for entry in entries:
            if entry.endswith(METADATA_SUFFIX):
                continue
            try:
                stats = await self.blob_store.stat_object(entry)
            except CloudStoreError as e:
                self.logger.debug(f"Skipping child {entry} of {identifier.path}: {e}")
                continue

            is_container = entry.endswith(CONTAINER_SEPARATOR)
            child = await self.mapper.resolve_to_identifier(entry, is_container)
            if child.is_metadata:
                continue

            record = MetadataRecord(child.identifier.path)
            self._add_storage_metadata(record, stats, is_container)
            if child.content_type:
                try:
                    content_type = parse_content_type(child.content_type)
                    record.add_iri(RDF_TYPE, media_type_iri(content_type.value))
                except BadRequestError:
                    self.logger.warning(f"Detected an invalid content-type {child.content_type} for {child.identifier.path}")
            yield record

    async def _read_sidecar(self, identifier: ResourceIdentifier) -> MetadataRecord:
        sidecar = await self.mapper.resolve_to_storage(identifier, is_metadata=True)
        codec = codec_for(self.codecs, sidecar.content_type)
        try:
            async with await self.blob_store.get_object(sidecar.storage_key) as stream:
                data = await stream.read()
        except NotFoundError:
            return MetadataRecord(identifier.path)
        return codec.decode(identifier.path, data)

    @staticmethod
    def _add_storage_metadata(record: MetadataRecord, stats: BlobStat, is_container: bool) -> None:
        if is_container:
            record.add_iri(RDF_TYPE, LDP_CONTAINER)
            record.add_iri(RDF_TYPE, LDP_BASIC_CONTAINER)
        record.add_iri(RDF_TYPE, LDP_RESOURCE)

        if not is_container:
            record.add_literal(POSIX_SIZE, stats.size, XSD_INTEGER, graph=RESPONSE_METADATA)

        modified = stats.last_modified
        if modified.tzinfo is None:
            modified = modified.replace(tzinfo=timezone.utc)
        modified = modified.astimezone(timezone.utc).replace(microsecond=0)
        record.add_literal(DC_MODIFIED, modified.isoformat().replace("+00:00", "Z"), XSD_DATE_TIME)
        record.add_literal(POSIX_MTIME, int(modified.timestamp()), XSD_INTEGER, graph=RESPONSE_METADATA)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @async_log_execution_time
    async def write_document(self, identifier: ResourceIdentifier, data: BinaryData, metadata: MetadataRecord) -> None:
        """Store a document and its sidecar.

        The sidecar is written before the data and removed again when the data
        write fails. A content type the storage key cannot encode is kept in the
        sidecar.
        """
        link = await self.mapper.resolve_to_storage(identifier, content_type=metadata.content_type)

        # A changed content type moves the document to a different key
        existing = await self.mapper.resolve_to_storage(identifier)
        if existing.storage_key != link.storage_key:
            self.logger.debug(f"Removing {existing.storage_key}, {identifier.path} moves to {link.storage_key}")
            await self.blob_store.delete_object(existing.storage_key)

        persisted = self._persistable(metadata, link, is_container=False)
        sidecar_written = await self._write_sidecar(identifier, persisted, is_container=False)

        try:
            await self.blob_store.write_object(link.storage_key, data)
        except Exception:
            if sidecar_written:
                sidecar = await self.mapper.resolve_to_storage(identifier, is_metadata=True)
                await self.blob_store.delete_object(sidecar.storage_key)
            raise

    @async_log_execution_time
    async def write_container(self, identifier: ResourceIdentifier, metadata: MetadataRecord) -> None:
        """Create a container. Metadata is only stored when the container is new."""
        link = await self.mapper.resolve_to_storage(identifier)
        created = await self.blob_store.write_container_marker(link.storage_key)
        if created:
            persisted = self._persistable(metadata, link, is_container=True)
            await self._write_sidecar(identifier, persisted, is_container=True)
        else:
            self.logger.debug(f"Container {identifier.path} already exists, keeping its metadata")

    @async_log_execution_time
    async def write_metadata(self, identifier: ResourceIdentifier, metadata: MetadataRecord) -> None:
        """Replace the sidecar of a resource without touching its data."""
        link = await self.mapper.resolve_to_storage(identifier, content_type=metadata.content_type)
        persisted = self._persistable(metadata, link, is_container=identifier.is_container)
        await self._write_sidecar(identifier, persisted, is_container=identifier.is_container)

    @async_log_execution_time
    async def delete_resource(self, identifier: ResourceIdentifier) -> None:
        """Delete a resource together with its sidecar.

        Raises:
            NotFoundError: Neither a container nor a document exists
        """
        link = await self.mapper.resolve_to_storage(identifier)
        await self.blob_store.stat_object(link.storage_key)

        # A container's sidecar is its marker
        if not identifier.is_container:
            sidecar = await self.mapper.resolve_to_storage(identifier, is_metadata=True)
            await self.blob_store.delete_object(sidecar.storage_key)
        await self.blob_store.delete_object(link.storage_key)

    def _persistable(self, metadata: MetadataRecord, link: ResourceLink, is_container: bool) -> MetadataRecord:
        """Copy `metadata` without the attributes that are derived from storage."""
        record = metadata.copy()
        for tag in STORAGE_TYPE_TAGS:
            record.remove(RDF_TYPE, tag)
        for predicate in STORAGE_PREDICATES:
            record.remove_all(predicate)
        for attribute in record.attributes(graph=RESPONSE_METADATA):
            record.remove(attribute.predicate, attribute.value)
        if is_container or link.content_type:
            record.remove_all(CONTENT_TYPE)
        return record

    async def _write_sidecar(self, identifier: ResourceIdentifier, record: MetadataRecord, is_container: bool) -> bool:
        """Write the sidecar, or delete a stale one when there is nothing to store.

        Returns:
            bool: True if a sidecar was written
        """
        sidecar = await self.mapper.resolve_to_storage(identifier, is_metadata=True)
        if len(record) == 0 and not is_container:
            await self.blob_store.delete_object(sidecar.storage_key)
            return False

        codec = codec_for(self.codecs, sidecar.content_type)
        await self.blob_store.write_object(sidecar.storage_key, codec.encode(record))
        return True
