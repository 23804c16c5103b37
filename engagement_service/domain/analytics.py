"""
Analytics event payloads - one schema per known event type

The event type is the discriminator, so a payload can only be stored under
the type it was validated for.
"""
from typing import Annotated, Any, Dict, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .exceptions import InvalidOperationError


class ProfileViewPayload(BaseModel):
    event_type: Literal["profile_view"] = "profile_view"
    viewer_id: Optional[str] = None


class PostViewPayload(BaseModel):
    event_type: Literal["post_view"] = "post_view"
    post_id: str


class PostEngagementPayload(BaseModel):
    event_type: Literal["post_engagement"] = "post_engagement"
    post_id: str
    action: Literal["like", "comment", "share"]


class ConnectionMadePayload(BaseModel):
    event_type: Literal["connection_made"] = "connection_made"
    connected_user_id: str


class OpportunityCreatedPayload(BaseModel):
    event_type: Literal["opportunity_created"] = "opportunity_created"
    opportunity_id: str
    title: Optional[str] = None


class SearchPerformedPayload(BaseModel):
    event_type: Literal["search_performed"] = "search_performed"
    query: str = Field(..., min_length=1, max_length=200)
    results: int = Field(0, ge=0)


AnalyticsPayload = Annotated[
    Union[
        ProfileViewPayload,
        PostViewPayload,
        PostEngagementPayload,
        ConnectionMadePayload,
        OpportunityCreatedPayload,
        SearchPerformedPayload,
    ],
    Field(discriminator="event_type"),
]

_payload_adapter = TypeAdapter(AnalyticsPayload)

EVENT_TYPES = (
    "profile_view",
    "post_view",
    "post_engagement",
    "connection_made",
    "opportunity_created",
    "search_performed",
)


def parse_payload(event_type: str, data: Optional[Dict[str, Any]] = None) -> AnalyticsPayload:
    """
    Validate raw event data against the schema for event_type

    Raises:
        InvalidOperationError: Unknown event type or malformed data
    """
    if event_type not in EVENT_TYPES:
        raise InvalidOperationError(f"Unknown analytics event type '{event_type}'")

    try:
        return _payload_adapter.validate_python({**(data or {}), "event_type": event_type})
    except ValidationError as e:
        raise InvalidOperationError(f"Invalid payload for '{event_type}': {e.errors()[0]['msg']}")


def payload_to_dict(payload: AnalyticsPayload) -> Dict[str, Any]:
    """Serializable form stored with the event (discriminator lives in its own column)"""
    return payload.model_dump(exclude={"event_type"})
