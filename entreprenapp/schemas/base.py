"""
Base Schemas.

Request bodies use camelCase on the wire and snake_case in Python.
Responses share the ``{success, message, data}`` envelope.
"""
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from entreprenapp.models.base import to_public


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
    )

    @field_validator("*", mode="after")
    @classmethod
    def naive_utc(cls, v: Any) -> Any:
        """Store datetimes as naive UTC, the form MongoDB returns them in."""
        if isinstance(v, datetime) and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    def changes(self) -> dict[str, Any]:
        """Fields explicitly sent by the client, in storage form."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class ErrorDetail(BaseModel):
    path: str
    message: str


class ErrorResponse(BaseModel):
    """Error envelope; ``errors`` only for validation failures."""
    success: bool = False
    message: str
    errors: Optional[List[ErrorDetail]] = None


def success_response(data: Any = None, message: str = "Success", **extra: Any) -> dict[str, Any]:
    """
    Build the success envelope.

    ``data`` and the extra top-level keys go through ``to_public`` so stored
    documents can be passed in as-is and snake_case keys reach the wire as
    camelCase.
    """
    body = {"success": True, "message": message, "data": to_public(data)}
    body.update(to_public(extra))
    return body


def paginate(page: int, limit: int, total: int) -> dict[str, Any]:
    pages = (total + limit - 1) // limit if limit else 0
    return {"page": page, "limit": limit, "total": total, "pages": pages, "has_more": page < pages}
