"""
MongoDB Base Models.

Provides base classes and utilities for MongoDB documents:
- BaseDocument with common fields and insert helpers
- ObjectId parsing for path parameters and request bodies
- Serialization of stored documents into API payloads
"""
from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from entreprenapp.core.exceptions import BadRequestException


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation Motor hands back for dates."""
    return datetime.utcnow()


def parse_object_id(value: Any, message: str = "Invalid ID format") -> ObjectId:
    """
    Convert a client-supplied identifier to ObjectId.

    Raises:
        BadRequestException: If the value is not a valid ObjectId
    """
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise BadRequestException(message)


def to_public(value: Any) -> Any:
    """
    Convert a stored document (or list of them) into a JSON-ready payload.

    ObjectIds become strings and snake_case keys become camelCase; keys
    starting with an underscore (``_id``) or without one are kept as-is.
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {
            (key if key.startswith("_") or "_" not in key else to_camel(key)): to_public(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [to_public(item) for item in value]
    return value


def same_id(left: Any, right: Any) -> bool:
    """Compare two identifiers regardless of ObjectId/str representation."""
    if left is None or right is None:
        return False
    return str(left) == str(right)


class BaseDocument(BaseModel):
    """
    Base class for MongoDB documents.

    Provides:
    - id field mapped to MongoDB _id
    - Timestamp fields (created_at, updated_at)
    - Insert serialization keeping ObjectId references intact

    Usage:
        class Post(BaseDocument):
            author: ObjectId
            content: str
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )

    __collection__ = ""

    id: Optional[ObjectId] = Field(default=None, alias="_id")

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_insert(self) -> dict[str, Any]:
        """Convert document for insertion (lets MongoDB generate _id)."""
        data = self.model_dump(exclude={"id"})
        now = utcnow()
        data["created_at"] = now
        data["updated_at"] = now
        return data

    async def insert(self, db) -> dict[str, Any]:
        """Insert into the document's collection and return the stored dict."""
        data = self.to_insert()
        result = await db[self.__collection__].insert_one(data)
        data["_id"] = result.inserted_id
        return data


class MediaFile(BaseModel):
    """Descriptor of a media file stored by the external object storage."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    url: str
    public_id: Optional[str] = None
    type: str = "image"
