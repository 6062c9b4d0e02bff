"""IRIs of the attributes the accessor reads and writes."""

RDF = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
LDP = "http://www.w3.org/ns/ldp#"
DC = "http://purl.org/dc/terms/"
POSIX = "http://www.w3.org/ns/posix/stat#"
XSD = "http://www.w3.org/2001/XMLSchema#"
MA = "http://www.w3.org/ns/ma-ont#"
IANA = "http://www.w3.org/ns/iana/media-types/"

RDF_TYPE = f"{RDF}type"

LDP_RESOURCE = f"{LDP}Resource"
LDP_CONTAINER = f"{LDP}Container"
LDP_BASIC_CONTAINER = f"{LDP}BasicContainer"

DC_MODIFIED = f"{DC}modified"

POSIX_MTIME = f"{POSIX}mtime"
POSIX_SIZE = f"{POSIX}size"

XSD_INTEGER = f"{XSD}integer"
XSD_DATE_TIME = f"{XSD}dateTime"

CONTENT_TYPE = f"{MA}format"

# Attributes in this graph describe the response, they are never persisted
RESPONSE_METADATA = "urn:npm:solid:community-server:meta:ResponseMetadata"

# Type tags derived from storage, never persisted in a sidecar
STORAGE_TYPE_TAGS = frozenset({LDP_RESOURCE, LDP_CONTAINER, LDP_BASIC_CONTAINER})


def media_type_iri(content_type: str) -> str:
    """Type tag for resources of a content type, e.g. `.../text/plain#Resource`."""
    return f"{IANA}{content_type}#Resource"
