#########################################
# --- Resource and storage schemas --- #
#########################################

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

CONTAINER_SEPARATOR = "/"
METADATA_SUFFIX = ".meta"


class ResourceIdentifier(BaseModel):
    """External identifier of a resource, e.g. `http://localhost:3000/docs/readme.txt`."""
    path: str = Field(
        description="Absolute identifier. A trailing slash marks a container.",
        json_schema_extra={"example": "http://localhost:3000/docs/"},
    )

    model_config = ConfigDict(frozen=True)

    @property
    def is_container(self) -> bool:
        return self.path.endswith(CONTAINER_SEPARATOR)


class ResourceLink(BaseModel):
    """Result of mapping an identifier to a storage key (or back)."""
    identifier: ResourceIdentifier
    storage_key: str = Field(description="Flat key of the object inside the bucket.")
    content_type: Optional[str] = Field(
        default=None,
        description="Absent for containers and for content types the key cannot encode.",
    )
    is_metadata: bool = Field(default=False, description="True when the key is a `.meta` sidecar.")

    model_config = ConfigDict(frozen=True)


class BlobStat(BaseModel):
    """Storage-level facts about one object (or a container marker)."""
    size: int = Field(description="The size of the object in bytes.")
    last_modified: datetime = Field(description="The last modified date of the object.")
    etag: Optional[str] = None
    is_container: bool = False


@dataclass
class Representation:
    """Data and metadata handed to the accessor by the protocol layer."""
    metadata: Any
    data: Any = None
    binary: bool = True
