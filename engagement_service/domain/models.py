"""
Domain models - Core business entities
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from enum import Enum


class ConnectionStatus(str, Enum):
    """Connection request status"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    BLOCKED = "blocked"


class NotificationType(str, Enum):
    """Kinds of notifications a user can receive"""
    LIKE = "like"
    COMMENT = "comment"
    CONNECTION = "connection"
    MENTION = "mention"
    SHARE = "share"


class TargetType(str, Enum):
    """What a notification points at"""
    POST = "post"
    COMMENT = "comment"
    USER = "user"


class FeedItemKind(str, Enum):
    """Origin stream of an activity feed item"""
    POST = "post"
    COMMENT = "comment"
    CONNECTION = "connection"


@dataclass
class User:
    """User domain model"""
    id: str
    username: str
    email: str
    full_name: str = ""
    business_name: Optional[str] = None
    business_type: Optional[str] = None
    location: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None
    connections: int = 0
    business_score: int = 50
    created_at: Optional[datetime] = None

    def public_profile(self) -> "PublicProfile":
        """Fields that are safe to show next to someone else's content"""
        return PublicProfile(
            id=self.id,
            username=self.username,
            full_name=self.full_name,
            business_name=self.business_name,
            avatar=self.avatar,
        )


@dataclass
class PublicProfile:
    """Subset of a user shown as an actor or author"""
    id: str
    username: str
    full_name: str = ""
    business_name: Optional[str] = None
    avatar: Optional[str] = None


@dataclass
class Post:
    """Post domain model"""
    id: str
    user_id: str
    content: str
    title: Optional[str] = None
    image_url: Optional[str] = None
    post_type: str = "discussion"
    tags: List[str] = field(default_factory=list)
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Like:
    """Like domain model"""
    id: str
    post_id: str
    user_id: str
    created_at: Optional[datetime] = None


@dataclass
class Comment:
    """Comment domain model"""
    id: str
    post_id: str
    user_id: str
    content: str
    created_at: Optional[datetime] = None


@dataclass
class Connection:
    """Connection domain model"""
    id: str
    requester_id: str
    receiver_id: str
    status: ConnectionStatus = ConnectionStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def effective_at(self) -> Optional[datetime]:
        """Timestamp used for ordering: last status change, else creation"""
        return self.updated_at or self.created_at

    def is_pending(self) -> bool:
        """Check if the request still awaits an answer"""
        return self.status == ConnectionStatus.PENDING

    def other_party(self, user_id: str) -> str:
        """Return the participant that is not user_id"""
        return self.receiver_id if self.requester_id == user_id else self.requester_id


@dataclass
class Notification:
    """Notification domain model"""
    id: str
    user_id: str
    actor_id: str
    type: NotificationType
    message: str
    target_id: Optional[str] = None
    target_type: Optional[TargetType] = None
    read: bool = False
    created_at: Optional[datetime] = None


@dataclass
class NotificationWithActor:
    """Notification joined with its actor's profile at read time"""
    notification: Notification
    actor: Optional[PublicProfile]


@dataclass
class AnalyticsEvent:
    """Analytics event domain model (append-only)"""
    id: str
    user_id: str
    event_type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass
class TrendingTopic:
    """Trending topic domain model"""
    id: str
    tag: str
    count: int = 1
    growth_rate: float = 0.0
    last_updated: Optional[datetime] = None


@dataclass
class BusinessMetric:
    """Per-user business metrics"""
    id: str
    user_id: str
    profile_views: int = 0
    network_growth: int = 0
    opportunities: int = 0
    engagement_score: int = 0
    last_updated: Optional[datetime] = None


@dataclass
class ConnectionEvent:
    """Accepted connection as seen from one participant"""
    connection_id: str
    other_user_id: str
    status: ConnectionStatus


@dataclass
class FeedItem:
    """Activity feed entry tagged with its origin stream"""
    kind: FeedItemKind
    id: str
    occurred_at: datetime
    data: Union[Post, Comment, ConnectionEvent]
