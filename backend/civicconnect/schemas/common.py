"""Common schemas used across the application."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RequestModel(BaseModel):
    """Base for request bodies: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")


class ResponseModel(BaseModel):
    """Base for response bodies, serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Coordinate(RequestModel):
    """Geographic coordinate as sent by the mobile client.

    Ranges are checked by the lifecycle validation so that the error names
    the offending axis.
    """

    lat: float = Field(..., description="Latitude in degrees")
    lng: float = Field(..., description="Longitude in degrees")


class Pagination(ResponseModel):
    """Paging metadata returned alongside a report listing."""

    current_page: int
    total_pages: int
    total_reports: int
    has_next: bool
    has_prev: bool


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
