"""Extension ⇄ content-type table and content-type parsing."""

import mimetypes
import re
from dataclasses import dataclass, field
from typing import Dict, Optional

from cloud_store.errors import BadRequestError

APPLICATION_OCTET_STREAM = "application/octet-stream"

# Linked-data formats the Python mimetypes defaults do not know about
SYSTEM_EXTRA_TYPES = {
    "ttl": "text/turtle",
    "n3": "text/n3",
    "nt": "application/n-triples",
    "nq": "application/n-quads",
    "trig": "application/trig",
    "jsonld": "application/ld+json",
    "md": "text/markdown",
}

# Extensions of internal objects. They resolve to a content type, but are never
# chosen as the extension of a document, so `$.meta` keys cannot be produced.
DEFAULT_CUSTOM_TYPES = {
    "acl": "text/turtle",
    "meta": "application/json",
}

_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_CONTENT_TYPE_PATTERN = re.compile(rf"^\s*({_TOKEN})/({_TOKEN})\s*(;.*)?$")
_EXTENSION_PATTERN = re.compile(r"\.([^./]+)$")


@dataclass(frozen=True)
class ContentType:
    """A parsed media type, e.g. `text/plain; charset=utf-8`."""
    value: str
    parameters: Dict[str, str] = field(default_factory=dict)


def parse_content_type(content_type: str) -> ContentType:
    """Parse and validate a content-type string.

    Args:
        content_type: Raw header value

    Returns:
        ContentType with the lower-cased `type/subtype` and its parameters

    Raises:
        BadRequestError: If the value is not a valid media type
    """
    match = _CONTENT_TYPE_PATTERN.match(content_type or "")
    if not match:
        raise BadRequestError(f"Invalid content-type: {content_type!r}")

    parameters = {}
    for raw_parameter in (match.group(3) or "").split(";"):
        if not raw_parameter.strip():
            continue
        name, separator, value = raw_parameter.partition("=")
        if not separator or not re.fullmatch(_TOKEN, name.strip()):
            raise BadRequestError(f"Invalid content-type parameter {raw_parameter!r} in {content_type!r}")
        parameters[name.strip().lower()] = value.strip().strip('"')

    return ContentType(value=f"{match.group(1)}/{match.group(2)}".lower(), parameters=parameters)


def get_extension(path: str) -> str:
    """Return the extension of the last path segment without its dot, or ``""``."""
    match = _EXTENSION_PATTERN.search(path)
    return match.group(1) if match else ""


class ContentTypeTable:
    """Bidirectional mapping between filename extensions and content types.

    Configured custom types take precedence over the system table in both
    directions. When several extensions map to one content type, the last
    registered extension wins for the reverse lookup. The built-in `acl` and
    `meta` entries only resolve extensions to content types.
    """

    def __init__(
        self,
        custom_types: Optional[Dict[str, str]] = None,
        default_content_type: str = APPLICATION_OCTET_STREAM,
    ):
        self.default_content_type = default_content_type
        self._system = mimetypes.MimeTypes()
        for extension, content_type in SYSTEM_EXTRA_TYPES.items():
            self._system.add_type(content_type, f".{extension}")

        self.custom_types: Dict[str, str] = {}
        self.custom_extensions: Dict[str, str] = {}
        for extension, content_type in DEFAULT_CUSTOM_TYPES.items():
            self.register(extension, content_type, reverse=False)
        for extension, content_type in (custom_types or {}).items():
            self.register(extension, content_type)

    def register(self, extension: str, content_type: str, reverse: bool = True) -> None:
        extension = extension.lstrip(".").lower()
        content_type = content_type.lower()
        self.custom_types[extension] = content_type
        if reverse:
            self.custom_extensions[content_type] = extension

    def content_type_for(self, extension: str) -> Optional[str]:
        """Look up the content type of an extension, ``None`` if unknown."""
        if not extension:
            return None
        extension = extension.lower()
        if extension in self.custom_types:
            return self.custom_types[extension]
        strict, non_strict = self._system.types_map
        return strict.get(f".{extension}") or non_strict.get(f".{extension}")

    def extension_for(self, content_type: str) -> Optional[str]:
        """Look up the extension of a content type, ``None`` if it has none."""
        content_type = content_type.split(";", 1)[0].strip().lower()
        if content_type in self.custom_extensions:
            return self.custom_extensions[content_type]
        extension = self._system.guess_extension(content_type)
        return extension.lstrip(".") if extension else None

    def content_type_from_path(self, path: str) -> str:
        """Resolve a content type from a path's extension, falling back to the default."""
        return self.content_type_for(get_extension(path)) or self.default_content_type
