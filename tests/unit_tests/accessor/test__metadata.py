import json

import pytest
from pydantic import ValidationError

from cloud_store.accessor.metadata import (
    Attribute,
    JsonSidecarCodec,
    MetadataRecord,
    codec_for,
    default_codecs,
)
from cloud_store.accessor.vocabulary import CONTENT_TYPE, LDP_RESOURCE, RDF_TYPE, RESPONSE_METADATA
from cloud_store.errors import InternalServerError, UnsupportedMediaTypeError

SUBJECT = "http://test.com/test.txt"
TITLE = "http://purl.org/dc/terms/title"


def test_record_operations():
    record = MetadataRecord(SUBJECT)
    record.add_iri(RDF_TYPE, LDP_RESOURCE)
    record.add_literal(TITLE, "first")
    record.add_literal(TITLE, "second")
    record.add_literal(TITLE, "second")

    assert len(record) == 3
    assert record.get(TITLE).value == "first"
    assert record.values(TITLE) == ["first", "second"]
    assert not record.get(RDF_TYPE).is_literal

    record.remove(TITLE, "first")
    assert record.values(TITLE) == ["second"]

    record.set(TITLE, "only")
    assert record.values(TITLE) == ["only"]

    record.remove_all(TITLE)
    assert record.get(TITLE) is None


def test_record_graphs():
    record = MetadataRecord(SUBJECT)
    record.add_literal(TITLE, "title")
    record.add_literal("http://www.w3.org/ns/posix/stat#size", 5, graph=RESPONSE_METADATA)

    assert len(record.attributes()) == 2
    assert [attribute.value for attribute in record.attributes(graph=RESPONSE_METADATA)] == ["5"]
    assert [attribute.value for attribute in record.attributes(graph=None)] == ["title"]


def test_record_content_type():
    record = MetadataRecord(SUBJECT)
    assert record.content_type is None

    record.content_type = "text/plain"
    record.content_type = "text/turtle"
    assert record.content_type == "text/turtle"
    assert len(record.get_all(CONTENT_TYPE)) == 1

    record.content_type = None
    assert len(record) == 0


def test_record_copy_is_independent():
    record = MetadataRecord(SUBJECT)
    record.add_literal(TITLE, "title")

    copied = record.copy()
    copied.remove_all(TITLE)

    assert len(record) == 1
    assert len(copied) == 0
    assert copied.identifier == SUBJECT


def test_json_codec_round_trip():
    codec = JsonSidecarCodec()
    record = MetadataRecord(SUBJECT)
    record.add_literal(TITLE, "Ünïcode title")
    record.add_literal("http://example.com/count", 3, datatype="http://www.w3.org/2001/XMLSchema#integer")
    record.add_iri(RDF_TYPE, "http://example.com/Thing")

    encoded = codec.encode(record)
    decoded = codec.decode(SUBJECT, encoded)

    assert json.loads(encoded)[0] == {"predicate": TITLE, "value": "Ünïcode title", "is_literal": True}
    assert list(decoded) == list(record)


@pytest.mark.parametrize("data", [b"", b"  \n"])
def test_json_codec_decodes_empty_sidecar(data):
    assert len(JsonSidecarCodec().decode(SUBJECT, data)) == 0


def test_json_codec_rejects_corrupt_sidecar():
    with pytest.raises(InternalServerError):
        JsonSidecarCodec().decode(SUBJECT, b'{"not": "a list"}')


def test_codec_lookup():
    codecs = default_codecs()

    assert isinstance(codec_for(codecs, "application/json"), JsonSidecarCodec)
    with pytest.raises(UnsupportedMediaTypeError):
        codec_for(codecs, "text/turtle")
    with pytest.raises(UnsupportedMediaTypeError):
        codec_for(codecs, None)


def test_attribute_is_immutable():
    attribute = Attribute(predicate=TITLE, value="title")

    with pytest.raises(ValidationError):
        attribute.value = "other"
