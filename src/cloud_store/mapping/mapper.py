"""
Identifier ⇄ storage key mapping.

Follows https://www.w3.org/DesignIssues/HTTPFilenameMapping.html: the content
type of a document is derived from its extension. When the identifier's own
extension does not match the document's real content type, the storage key is
suffixed with `$.` and the right extension, e.g. `root/notes.txt$.ttl` for a
Turtle document identified as `notes.txt`.
"""

import logging
import re
from typing import Optional, Protocol, runtime_checkable
from urllib.parse import quote, unquote

from cloud_store.errors import (
    BadRequestError,
    InternalServerError,
    NotFoundError,
    NotImplementedHttpError,
)
from cloud_store.mapping.content_types import ContentTypeTable, get_extension
from cloud_store.s3.blob_store import BlobStore
from cloud_store.schemas import (
    CONTAINER_SEPARATOR,
    METADATA_SUFFIX,
    ResourceIdentifier,
    ResourceLink,
)

RECONCILIATION_MARKER = "$"
DEFAULT_UNKNOWN_MEDIA_TYPE_EXTENSION = "unknown"

_RESERVED_SUFFIX_PATTERN = re.compile(r"\$\.\w+$")

# RFC 3986 pchar minus unreserved characters, which quote() never encodes
_SAFE_PATH_CHARACTERS = "!$&'()*+,;=:@"


@runtime_checkable
class ResourceMapper(Protocol):
    """Translates between resource identifiers and storage keys."""

    async def resolve_to_storage(
        self,
        identifier: ResourceIdentifier,
        is_metadata: bool = False,
        content_type: Optional[str] = None,
    ) -> ResourceLink:
        ...

    async def resolve_to_identifier(self, storage_key: str, is_container: bool) -> ResourceLink:
        ...


def _decode_segment(segment: str) -> str:
    decoded = unquote(segment)
    # An encoded slash must not turn into a path separator
    return segment if CONTAINER_SEPARATOR in decoded else decoded


def _encode_segment(segment: str) -> str:
    # Segments kept encoded by _decode_segment are already in identifier form
    if CONTAINER_SEPARATOR in unquote(segment):
        return segment
    return quote(segment, safe=_SAFE_PATH_CHARACTERS)


def _normalize_content_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


class ExtensionBasedMapper:
    """Maps identifiers under `base_url` onto keys under `root` in a bucket."""

    def __init__(
        self,
        base_url: str,
        blob_store: BlobStore,
        *,
        root: str = "root",
        content_types: Optional[ContentTypeTable] = None,
        unknown_media_type_extension: str = DEFAULT_UNKNOWN_MEDIA_TYPE_EXTENSION,
        logger: Optional[logging.Logger] = None,
    ):
        self.base_url = base_url
        self.base_request_uri = base_url.rstrip(CONTAINER_SEPARATOR)
        self.root = root.strip(CONTAINER_SEPARATOR)
        self.blob_store = blob_store
        self.content_types = content_types or ContentTypeTable()
        self.unknown_media_type_extension = unknown_media_type_extension
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # identifier -> storage key
    # ------------------------------------------------------------------

    async def resolve_to_storage(
        self,
        identifier: ResourceIdentifier,
        is_metadata: bool = False,
        content_type: Optional[str] = None,
    ) -> ResourceLink:
        """Map an identifier to the storage key holding its data or its sidecar.

        Args:
            identifier: Resource identifier under the configured base
            is_metadata: Map to the `.meta` sidecar instead of the primary object
            content_type: Content type of data about to be written. When absent
                the key of an existing document is looked up in the bucket.

        Returns:
            ResourceLink for the resolved key. `content_type` is ``None`` for
            containers and for written content types no extension can
            represent. Reads of such keys fall back to the default type.

        Raises:
            NotFoundError: The identifier is not under the base
            BadRequestError: The identifier is malformed
            NotImplementedHttpError: The identifier uses the reserved `$.ext` syntax
        """
        relative = self._relative_path(identifier)
        if is_metadata:
            relative = f"{relative}{METADATA_SUFFIX}"
        self._validate_relative_path(relative, identifier)
        storage_key = f"{self.root}{relative}"

        if identifier.is_container and not is_metadata:
            self.logger.debug(f"Container {identifier.path} maps to {storage_key}")
            return ResourceLink(identifier=identifier, storage_key=storage_key)

        return await self._resolve_document(identifier, storage_key, content_type)

    def _relative_path(self, identifier: ResourceIdentifier) -> str:
        if not identifier.path.startswith(self.base_request_uri):
            self.logger.warning(f"The URL {identifier.path} is outside of the scope {self.base_request_uri}")
            raise NotFoundError(f"{identifier.path} is not part of {self.base_request_uri}")
        relative = identifier.path[len(self.base_request_uri):]
        return CONTAINER_SEPARATOR.join(_decode_segment(segment) for segment in relative.split(CONTAINER_SEPARATOR))

    def _validate_relative_path(self, relative: str, identifier: ResourceIdentifier) -> None:
        if not relative.startswith(CONTAINER_SEPARATOR):
            self.logger.warning(f"URL {identifier.path} needs a / after the base")
            raise BadRequestError("URL needs a / after the base")
        if ".." in relative.split(CONTAINER_SEPARATOR):
            self.logger.warning(f"Disallowed /../ segment in URL {identifier.path}")
            raise BadRequestError("Disallowed /../ segment in URL")

    async def _resolve_document(
        self,
        identifier: ResourceIdentifier,
        storage_key: str,
        content_type: Optional[str],
    ) -> ResourceLink:
        if _RESERVED_SUFFIX_PATTERN.search(storage_key):
            self.logger.warning(f"Identifier {identifier.path} contains a dollar sign before its extension")
            raise NotImplementedHttpError("Identifiers cannot contain a dollar sign before their extension")

        if content_type is None:
            if not storage_key.endswith(METADATA_SUFFIX):
                storage_key = await self._find_existing_key(storage_key)
            resolved_type = self.content_types.content_type_from_path(storage_key)
        elif _normalize_content_type(content_type) == self.content_types.content_type_from_path(storage_key):
            resolved_type = self.content_types.content_type_from_path(storage_key)
        else:
            storage_key, resolved_type = self._reconcile(storage_key, content_type)

        self.logger.debug(f"Document {identifier.path} maps to {storage_key} ({resolved_type})")
        return ResourceLink(
            identifier=identifier,
            storage_key=storage_key,
            content_type=resolved_type,
            is_metadata=storage_key.endswith(METADATA_SUFFIX),
        )

    def _reconcile(self, storage_key: str, content_type: str):
        """Append `$.<ext>` so the key encodes `content_type`."""
        normalized = _normalize_content_type(content_type)
        extension = self.content_types.extension_for(normalized)
        if extension and self.content_types.content_type_for(extension) == normalized:
            return f"{storage_key}{RECONCILIATION_MARKER}.{extension}", normalized
        # The real type cannot be encoded in the key and has to live in the sidecar
        return f"{storage_key}{RECONCILIATION_MARKER}.{self.unknown_media_type_extension}", None

    async def _find_existing_key(self, storage_key: str) -> str:
        """Find the stored key of a document, which may carry a `$.<ext>` suffix."""
        folder = storage_key[:storage_key.rindex(CONTAINER_SEPARATOR) + 1]
        try:
            entries = await self.blob_store.list_objects(folder)
        except NotFoundError:
            # Parent folder does not exist (or is not a folder)
            return storage_key

        if storage_key in entries:
            return storage_key
        for entry in entries:
            extension = get_extension(entry)
            if extension and entry == f"{storage_key}{RECONCILIATION_MARKER}.{extension}":
                return entry
        return storage_key

    # ------------------------------------------------------------------
    # storage key -> identifier
    # ------------------------------------------------------------------

    async def resolve_to_identifier(self, storage_key: str, is_container: bool) -> ResourceLink:
        """Map a storage key found in the bucket back to its identifier.

        Raises:
            InternalServerError: The key is not under the root prefix
        """
        if not (storage_key == self.root or storage_key.startswith(f"{self.root}{CONTAINER_SEPARATOR}")):
            self.logger.error(f"Trying to access file {storage_key} outside of {self.root}")
            raise InternalServerError(f"File {storage_key} is not part of the file storage at {self.root}")
        relative = storage_key[len(self.root):]

        content_type = None
        if is_container:
            path = self._encode(relative)
            if not path.endswith(CONTAINER_SEPARATOR):
                path = f"{path}{CONTAINER_SEPARATOR}"
            self.logger.debug(f"Container filepath {storage_key} maps to URL {self.base_request_uri}{path}")
        else:
            path = self._encode(self.strip_extension(relative))
            content_type = self.content_types.content_type_from_path(storage_key)
            self.logger.debug(f"Document {storage_key} maps to URL {self.base_request_uri}{path}")

        is_metadata = storage_key.endswith(METADATA_SUFFIX)
        if is_metadata:
            path = path[:-len(METADATA_SUFFIX)]

        return ResourceLink(
            identifier=ResourceIdentifier(path=f"{self.base_request_uri}{path}"),
            storage_key=storage_key,
            content_type=content_type,
            is_metadata=is_metadata,
        )

    @staticmethod
    def strip_extension(path: str) -> str:
        """Remove a `$.<ext>` reconciliation suffix, if present."""
        extension = get_extension(path)
        suffix = f"{RECONCILIATION_MARKER}.{extension}"
        if extension and path.endswith(suffix):
            return path[:-len(suffix)]
        return path

    @staticmethod
    def _encode(relative: str) -> str:
        return CONTAINER_SEPARATOR.join(_encode_segment(segment) for segment in relative.split(CONTAINER_SEPARATOR))
