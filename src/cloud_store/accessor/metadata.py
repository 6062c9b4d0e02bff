"""
Descriptive metadata records and their sidecar serialization.

A record is an ordered list of attributes about one resource. Attributes are
either IRIs (type tags) or literals with an optional datatype, and may belong
to a named graph; the `ResponseMetadata` graph holds facts that are reported
to clients but never written back to storage.
"""

import json
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from cloud_store.accessor.vocabulary import CONTENT_TYPE
from cloud_store.errors import InternalServerError, UnsupportedMediaTypeError

# Sentinel for "attributes in any graph"
ANY_GRAPH = object()


class Attribute(BaseModel):
    """One (predicate, value) pair of a metadata record."""
    predicate: str
    value: str
    is_literal: bool = True
    datatype: Optional[str] = None
    graph: Optional[str] = Field(default=None, description="Named graph, absent for the default graph.")

    model_config = ConfigDict(frozen=True)


_ATTRIBUTE_LIST = TypeAdapter(List[Attribute])


class MetadataRecord:
    """Mutable, ordered collection of attributes describing `identifier`."""

    def __init__(self, identifier: str, attributes: Iterable[Attribute] = ()):
        self.identifier = identifier
        self._attributes: List[Attribute] = list(attributes)

    def add(self, attribute: Attribute) -> None:
        if attribute not in self._attributes:
            self._attributes.append(attribute)

    def add_iri(self, predicate: str, iri: str, graph: Optional[str] = None) -> None:
        self.add(Attribute(predicate=predicate, value=iri, is_literal=False, graph=graph))

    def add_literal(
        self,
        predicate: str,
        value,
        datatype: Optional[str] = None,
        graph: Optional[str] = None,
    ) -> None:
        self.add(Attribute(predicate=predicate, value=str(value), datatype=datatype, graph=graph))

    def set(self, predicate: str, value, *, datatype: Optional[str] = None, graph: Optional[str] = None) -> None:
        """Replace every value of `predicate` with a single literal."""
        self.remove_all(predicate)
        self.add_literal(predicate, value, datatype=datatype, graph=graph)

    def remove(self, predicate: str, value: str) -> None:
        self._attributes = [
            attribute for attribute in self._attributes
            if not (attribute.predicate == predicate and attribute.value == value)
        ]

    def remove_all(self, predicate: str) -> None:
        self._attributes = [attribute for attribute in self._attributes if attribute.predicate != predicate]

    def get(self, predicate: str) -> Optional[Attribute]:
        """Return the first attribute for `predicate`, if any."""
        for attribute in self._attributes:
            if attribute.predicate == predicate:
                return attribute
        return None

    def get_all(self, predicate: str) -> List[Attribute]:
        return [attribute for attribute in self._attributes if attribute.predicate == predicate]

    def values(self, predicate: str) -> List[str]:
        return [attribute.value for attribute in self.get_all(predicate)]

    def attributes(self, graph=ANY_GRAPH) -> List[Attribute]:
        if graph is ANY_GRAPH:
            return list(self._attributes)
        return [attribute for attribute in self._attributes if attribute.graph == graph]

    @property
    def content_type(self) -> Optional[str]:
        attribute = self.get(CONTENT_TYPE)
        return attribute.value if attribute else None

    @content_type.setter
    def content_type(self, value: Optional[str]) -> None:
        self.remove_all(CONTENT_TYPE)
        if value is not None:
            self.add_literal(CONTENT_TYPE, value)

    def copy(self, identifier: Optional[str] = None) -> "MetadataRecord":
        return MetadataRecord(identifier or self.identifier, self._attributes)

    def __len__(self) -> int:
        return len(self._attributes)

    def __iter__(self) -> Iterator[Attribute]:
        return iter(list(self._attributes))

    def __repr__(self) -> str:
        return f"MetadataRecord({self.identifier!r}, {len(self)} attributes)"


###########################
# --- Sidecar codecs --- #
###########################

@runtime_checkable
class SidecarCodec(Protocol):
    """Serializes the attributes of a record for storage in a sidecar object."""

    def encode(self, record: MetadataRecord) -> bytes:
        ...

    def decode(self, identifier: str, data: bytes) -> MetadataRecord:
        ...


class JsonSidecarCodec:
    """Stores attributes as a JSON array of attribute objects."""

    def encode(self, record: MetadataRecord) -> bytes:
        payload = [attribute.model_dump(exclude_none=True) for attribute in record]
        return json.dumps(payload, ensure_ascii=False).encode("utf-8")

    def decode(self, identifier: str, data: bytes) -> MetadataRecord:
        if not data.strip():
            return MetadataRecord(identifier)
        try:
            attributes = _ATTRIBUTE_LIST.validate_json(data)
        except ValidationError as e:
            raise InternalServerError(f"Corrupt metadata for {identifier}: {e}", cause=e) from e
        return MetadataRecord(identifier, attributes)


def default_codecs() -> Dict[str, SidecarCodec]:
    return {"application/json": JsonSidecarCodec()}


def codec_for(codecs: Dict[str, SidecarCodec], content_type: Optional[str]) -> SidecarCodec:
    """Pick the codec for a sidecar content type.

    Raises:
        UnsupportedMediaTypeError: No codec is registered for the type
    """
    codec = codecs.get(content_type or "")
    if codec is None:
        raise UnsupportedMediaTypeError(f"No sidecar serializer for {content_type}")
    return codec
