"""
Pydantic schemas for request/response validation
"""
from pydantic import BaseModel, Field
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from datetime import datetime

from .domain.models import ConnectionStatus, NotificationType, TargetType


# Request Schemas
class ConnectionCreate(BaseModel):
    """Connection request; the requester is the authenticated user"""

    receiver_id: str = Field(..., min_length=1)


class ConnectionStatusUpdate(BaseModel):
    """Answer to a connection request: accepted, rejected or blocked"""

    status: str


class CommentCreate(BaseModel):
    """New comment on a post"""

    content: str = Field(..., min_length=1, max_length=2000)


class TrendingTopicUpsert(BaseModel):
    """Refresh of one trending tag"""

    count: int = Field(..., ge=0)
    growth_rate: float = 0.0


class BusinessMetricUpdate(BaseModel):
    """Overwrite of a user's business metrics"""

    profile_views: int = Field(0, ge=0)
    network_growth: int = 0
    opportunities: int = Field(0, ge=0)
    engagement_score: int = 0


class AnalyticsEventCreate(BaseModel):
    """Analytics event; payload shape depends on event_type"""

    event_type: str
    payload: Dict[str, Any] = Field(default_factory=dict)


# Response Schemas
class MessageResponse(BaseModel):
    """Generic message response"""

    message: str


class PublicProfileResponse(BaseModel):
    """Actor or author shown next to content"""

    id: str
    username: str
    full_name: str = ""
    business_name: Optional[str] = None
    avatar: Optional[str] = None

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    """User as listed in suggestions"""

    id: str
    username: str
    full_name: str = ""
    business_name: Optional[str] = None
    business_type: Optional[str] = None
    location: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    connections: int = 0
    business_score: int = 50

    class Config:
        from_attributes = True


class ConnectionResponse(BaseModel):
    """Connection between two users"""

    id: str
    requester_id: str
    receiver_id: str
    status: ConnectionStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserConnectionResponse(BaseModel):
    """Connection seen from one participant, with the other one's profile"""

    connection: ConnectionResponse
    user: Optional[PublicProfileResponse] = None


class UserConnectionsResponse(BaseModel):
    """Response with a user's connections"""

    connections: List[UserConnectionResponse]
    count: int


class LikeResponse(BaseModel):
    """Response after like/unlike; success is False when nothing changed"""

    post_id: str
    success: bool
    liked: bool
    likes_count: int


class LikeStatusResponse(BaseModel):
    """Whether the current user likes a post"""

    post_id: str
    liked: bool


class CommentResponse(BaseModel):
    """Comment with its author's profile"""

    id: str
    post_id: str
    user_id: str
    content: str
    created_at: Optional[datetime] = None
    author: Optional[PublicProfileResponse] = None

    class Config:
        from_attributes = True


class CommentsResponse(BaseModel):
    """Response with a post's comments, oldest first"""

    comments: List[CommentResponse]
    count: int


class NotificationResponse(BaseModel):
    """Notification with its actor's profile"""

    id: str
    user_id: str
    actor_id: str
    type: NotificationType
    message: str
    target_id: Optional[str] = None
    target_type: Optional[TargetType] = None
    read: bool = False
    created_at: Optional[datetime] = None
    actor: Optional[PublicProfileResponse] = None


class NotificationsResponse(BaseModel):
    """Response with notifications, newest first"""

    notifications: List[NotificationResponse]
    count: int


class UnreadCountResponse(BaseModel):
    """Unread notification count"""

    count: int


class MarkAllReadResponse(BaseModel):
    """Number of notifications marked read"""

    updated: int


class SuggestionsResponse(BaseModel):
    """Response with connection suggestions"""

    suggestions: List[UserSummary]
    count: int


class TrendingTopicResponse(BaseModel):
    """Trending topic"""

    id: str
    tag: str
    count: int
    growth_rate: float
    last_updated: Optional[datetime] = None

    class Config:
        from_attributes = True


class TrendingTopicsResponse(BaseModel):
    """Response with trending topics, fastest growing first"""

    topics: List[TrendingTopicResponse]
    count: int


class PostActivity(BaseModel):
    """Post as shown in an activity feed"""

    id: str
    user_id: str
    content: str
    title: Optional[str] = None
    image_url: Optional[str] = None
    post_type: str = "discussion"
    tags: List[str] = []
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CommentActivity(BaseModel):
    """Comment as shown in an activity feed"""

    id: str
    post_id: str
    user_id: str
    content: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConnectionActivity(BaseModel):
    """Accepted connection as seen from the feed owner"""

    connection_id: str
    other_user_id: str
    status: ConnectionStatus

    class Config:
        from_attributes = True


class PostFeedItem(BaseModel):
    kind: Literal["post"] = "post"
    id: str
    occurred_at: datetime
    data: PostActivity


class CommentFeedItem(BaseModel):
    kind: Literal["comment"] = "comment"
    id: str
    occurred_at: datetime
    data: CommentActivity


class ConnectionFeedItem(BaseModel):
    kind: Literal["connection"] = "connection"
    id: str
    occurred_at: datetime
    data: ConnectionActivity


# Activity feed entry, tagged by the stream it came from
FeedItemResponse = Annotated[
    Union[PostFeedItem, CommentFeedItem, ConnectionFeedItem],
    Field(discriminator="kind"),
]


class ActivityFeedResponse(BaseModel):
    """Response with a user's activity feed, newest first"""

    user_id: str
    items: List[FeedItemResponse]
    count: int


class BusinessMetricResponse(BaseModel):
    """Per-user business metrics"""

    id: str
    user_id: str
    profile_views: int
    network_growth: int
    opportunities: int
    engagement_score: int
    last_updated: Optional[datetime] = None

    class Config:
        from_attributes = True


class AnalyticsEventResponse(BaseModel):
    """Recorded analytics event"""

    id: str
    user_id: str
    event_type: str
    payload: Dict[str, Any]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EventTypeSummaryResponse(BaseModel):
    """Events of one type"""

    event_type: str
    count: int
    events: List[AnalyticsEventResponse]

    class Config:
        from_attributes = True


class AnalyticsSummaryResponse(BaseModel):
    """A user's analytics events grouped by type"""

    user_id: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    total_events: int
    by_type: List[EventTypeSummaryResponse]

    class Config:
        from_attributes = True
