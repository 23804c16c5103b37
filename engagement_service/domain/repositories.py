"""
Repository interfaces - Define contracts for data access

Every repository of a unit of work shares one transaction. Counter
adjustments are single-statement operations floored at zero, and inserts
guarded by a unique constraint return None instead of raising when the
constraint rejects the row.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, AsyncContextManager, Dict, List, Optional, Sequence

from .models import (
    User,
    Post,
    Like,
    Comment,
    Connection,
    ConnectionStatus,
    Notification,
    NotificationWithActor,
    AnalyticsEvent,
    TrendingTopic,
    BusinessMetric,
)


class IUserRepository(ABC):
    """User repository interface"""

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[User]:
        """Find user by ID"""
        pass

    @abstractmethod
    async def find_by_ids(self, user_ids: Sequence[str]) -> Dict[str, User]:
        """Find several users, keyed by ID"""
        pass

    @abstractmethod
    async def adjust_connections(self, user_id: str, delta: int) -> None:
        """Add delta to the accepted-connection count, never below zero"""
        pass

    @abstractmethod
    async def list_ranked_excluding(self, excluded_ids: Sequence[str], limit: int) -> List[User]:
        """Users not in excluded_ids, highest business score first"""
        pass


class IPostRepository(ABC):
    """Post repository interface"""

    @abstractmethod
    async def find_by_id(self, post_id: str) -> Optional[Post]:
        """Find post by ID"""
        pass

    @abstractmethod
    async def adjust_likes_count(self, post_id: str, delta: int) -> int:
        """Add delta to likes_count (floored at zero) and return the new value"""
        pass

    @abstractmethod
    async def adjust_comments_count(self, post_id: str, delta: int) -> int:
        """Add delta to comments_count (floored at zero) and return the new value"""
        pass

    @abstractmethod
    async def list_recent_by_user(self, user_id: str, limit: int) -> List[Post]:
        """Posts authored by user, newest first"""
        pass


class ILikeRepository(ABC):
    """Like repository interface"""

    @abstractmethod
    async def insert(self, post_id: str, user_id: str) -> Optional[Like]:
        """Insert a like; None if the (post, user) pair already exists"""
        pass

    @abstractmethod
    async def delete(self, post_id: str, user_id: str) -> bool:
        """Delete the like for the pair; False if there was none"""
        pass

    @abstractmethod
    async def exists(self, post_id: str, user_id: str) -> bool:
        """Check if user liked post"""
        pass


class ICommentRepository(ABC):
    """Comment repository interface"""

    @abstractmethod
    async def insert(self, post_id: str, user_id: str, content: str) -> Comment:
        """Create a new comment"""
        pass

    @abstractmethod
    async def find_by_id(self, comment_id: str) -> Optional[Comment]:
        """Find comment by ID"""
        pass

    @abstractmethod
    async def delete(self, comment_id: str) -> Optional[Comment]:
        """Delete comment and return the deleted row, None if absent"""
        pass

    @abstractmethod
    async def list_for_post(self, post_id: str) -> List[Comment]:
        """Comments on a post, oldest first"""
        pass

    @abstractmethod
    async def list_recent_by_user(self, user_id: str, limit: int) -> List[Comment]:
        """Comments authored by user, newest first"""
        pass


class IConnectionRepository(ABC):
    """Connection repository interface"""

    @abstractmethod
    async def insert(self, requester_id: str, receiver_id: str) -> Optional[Connection]:
        """Insert a pending connection; None if the unordered pair is taken"""
        pass

    @abstractmethod
    async def find_by_id(self, connection_id: str) -> Optional[Connection]:
        """Find connection by ID"""
        pass

    @abstractmethod
    async def find_between(self, user_a: str, user_b: str) -> Optional[Connection]:
        """Find the connection relating two users, in either direction"""
        pass

    @abstractmethod
    async def transition(
        self,
        connection_id: str,
        from_status: ConnectionStatus,
        to_status: ConnectionStatus,
    ) -> Optional[Connection]:
        """Set status only if the row is currently in from_status"""
        pass

    @abstractmethod
    async def delete(self, connection_id: str) -> Optional[Connection]:
        """Delete connection and return the deleted row, None if absent"""
        pass

    @abstractmethod
    async def related_user_ids(self, user_id: str) -> List[str]:
        """Every user sharing a connection row with user_id, any status"""
        pass

    @abstractmethod
    async def list_for_user(
        self, user_id: str, status: Optional[ConnectionStatus] = None, limit: Optional[int] = None
    ) -> List[Connection]:
        """Connections touching user, most recently changed first"""
        pass


class INotificationRepository(ABC):
    """Notification repository interface"""

    @abstractmethod
    async def insert(
        self,
        user_id: str,
        actor_id: str,
        type: str,
        message: str,
        target_id: Optional[str] = None,
        target_type: Optional[str] = None,
    ) -> Notification:
        """Create an unread notification"""
        pass

    @abstractmethod
    async def mark_read(self, notification_id: str) -> Optional[str]:
        """Set read flag, return the owning user id; None if the notification does not exist"""
        pass

    @abstractmethod
    async def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of user as read, return how many"""
        pass

    @abstractmethod
    async def count_unread(self, user_id: str) -> int:
        """Count unread notifications for user"""
        pass

    @abstractmethod
    async def list_for_user(
        self, user_id: str, read: Optional[bool], limit: int
    ) -> List[NotificationWithActor]:
        """Notifications newest first, joined with the actor profile"""
        pass


class IAnalyticsEventRepository(ABC):
    """Analytics event repository interface"""

    @abstractmethod
    async def insert(self, user_id: str, event_type: str, payload: Dict[str, Any]) -> AnalyticsEvent:
        """Append an event"""
        pass

    @abstractmethod
    async def list_for_user(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[AnalyticsEvent]:
        """Events for user within [start, end], oldest first"""
        pass


class ITrendingTopicRepository(ABC):
    """Trending topic repository interface"""

    @abstractmethod
    async def upsert(self, tag: str, count: int, growth_rate: float) -> TrendingTopic:
        """Insert or overwrite the row for tag"""
        pass

    @abstractmethod
    async def list_ranked(self, limit: int) -> List[TrendingTopic]:
        """Growth rate desc, then count desc"""
        pass


class IBusinessMetricRepository(ABC):
    """Business metric repository interface"""

    @abstractmethod
    async def find_by_user(self, user_id: str) -> Optional[BusinessMetric]:
        """Find metrics row for user"""
        pass

    @abstractmethod
    async def insert_default(self, user_id: str) -> None:
        """Insert a zeroed row unless one already exists"""
        pass

    @abstractmethod
    async def upsert(
        self,
        user_id: str,
        profile_views: int,
        network_growth: int,
        opportunities: int,
        engagement_score: int,
    ) -> BusinessMetric:
        """Insert or overwrite the metrics row for user"""
        pass


class IUnitOfWork(ABC):
    """Repositories bound to a single transaction"""

    users: IUserRepository
    posts: IPostRepository
    likes: ILikeRepository
    comments: ICommentRepository
    connections: IConnectionRepository
    notifications: INotificationRepository
    analytics: IAnalyticsEventRepository
    trending: ITrendingTopicRepository
    metrics: IBusinessMetricRepository


class IPersistenceGateway(ABC):
    """Entry point to storage; every operation runs inside transaction()"""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[IUnitOfWork]:
        """
        Open a transaction

        Commits when the block exits normally, rolls back and re-raises
        when it exits with an exception.
        """
        pass
