"""In-memory persistence gateway used in place of PostgreSQL.

Mirrors the constraints the schema enforces (unique like per user and post,
one connection per unordered pair, counters floored at zero) and gives every
transaction all-or-nothing semantics by snapshotting state on entry.
"""

import asyncio
import copy
import fnmatch
import json
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from engagement_service.cache import RedisCache
from engagement_service.domain.models import (
    AnalyticsEvent,
    BusinessMetric,
    Comment,
    Connection,
    ConnectionStatus,
    Like,
    Notification,
    NotificationType,
    NotificationWithActor,
    Post,
    TargetType,
    TrendingTopic,
    User,
)
from engagement_service.domain.repositories import (
    IAnalyticsEventRepository,
    IBusinessMetricRepository,
    ICommentRepository,
    IConnectionRepository,
    ILikeRepository,
    INotificationRepository,
    IPersistenceGateway,
    IPostRepository,
    ITrendingTopicRepository,
    IUnitOfWork,
    IUserRepository,
)

EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)


@dataclass
class State:
    """Everything the gateway stores; deep-copied for rollback."""

    users: Dict[str, User] = field(default_factory=dict)
    posts: Dict[str, Post] = field(default_factory=dict)
    likes: Dict[str, Like] = field(default_factory=dict)
    comments: Dict[str, Comment] = field(default_factory=dict)
    connections: Dict[str, Connection] = field(default_factory=dict)
    notifications: Dict[str, Notification] = field(default_factory=dict)
    analytics: Dict[str, AnalyticsEvent] = field(default_factory=dict)
    trending: Dict[str, TrendingTopic] = field(default_factory=dict)
    metrics: Dict[str, BusinessMetric] = field(default_factory=dict)
    ticks: int = 0


def _new_id() -> str:
    return str(uuid.uuid4())


class _Repo:
    def __init__(self, gateway: "InMemoryGateway"):
        self.gateway = gateway

    @property
    def state(self) -> State:
        return self.gateway.state

    def now(self) -> datetime:
        return self.gateway.now()


class FakeUserRepository(_Repo, IUserRepository):
    async def find_by_id(self, user_id: str) -> Optional[User]:
        user = self.state.users.get(user_id)
        return replace(user) if user else None

    async def find_by_ids(self, user_ids: Sequence[str]) -> Dict[str, User]:
        return {uid: replace(self.state.users[uid]) for uid in user_ids if uid in self.state.users}

    async def adjust_connections(self, user_id: str, delta: int) -> None:
        user = self.state.users.get(user_id)
        if user:
            user.connections = max(user.connections + delta, 0)

    async def list_ranked_excluding(self, excluded_ids: Sequence[str], limit: int) -> List[User]:
        excluded = set(excluded_ids)
        users = [u for u in self.state.users.values() if u.id not in excluded]
        users.sort(key=lambda u: (-u.business_score, u.username))
        return [replace(u) for u in users[:limit]]


class FakePostRepository(_Repo, IPostRepository):
    async def find_by_id(self, post_id: str) -> Optional[Post]:
        post = self.state.posts.get(post_id)
        return replace(post) if post else None

    def _adjust(self, post_id: str, column: str, delta: int) -> int:
        post = self.state.posts[post_id]
        setattr(post, column, max(getattr(post, column) + delta, 0))
        return getattr(post, column)

    async def adjust_likes_count(self, post_id: str, delta: int) -> int:
        return self._adjust(post_id, "likes_count", delta)

    async def adjust_comments_count(self, post_id: str, delta: int) -> int:
        return self._adjust(post_id, "comments_count", delta)

    async def list_recent_by_user(self, user_id: str, limit: int) -> List[Post]:
        posts = [p for p in self.state.posts.values() if p.user_id == user_id]
        posts.sort(key=lambda p: p.created_at, reverse=True)
        return [replace(p) for p in posts[:limit]]


class FakeLikeRepository(_Repo, ILikeRepository):
    def _find(self, post_id: str, user_id: str) -> Optional[Like]:
        for like in self.state.likes.values():
            if like.post_id == post_id and like.user_id == user_id:
                return like
        return None

    async def insert(self, post_id: str, user_id: str) -> Optional[Like]:
        if self._find(post_id, user_id):
            return None
        like = Like(id=_new_id(), post_id=post_id, user_id=user_id, created_at=self.now())
        self.state.likes[like.id] = like
        return replace(like)

    async def delete(self, post_id: str, user_id: str) -> bool:
        like = self._find(post_id, user_id)
        if not like:
            return False
        del self.state.likes[like.id]
        return True

    async def exists(self, post_id: str, user_id: str) -> bool:
        return self._find(post_id, user_id) is not None


class FakeCommentRepository(_Repo, ICommentRepository):
    async def insert(self, post_id: str, user_id: str, content: str) -> Comment:
        comment = Comment(
            id=_new_id(), post_id=post_id, user_id=user_id, content=content, created_at=self.now()
        )
        self.state.comments[comment.id] = comment
        return replace(comment)

    async def find_by_id(self, comment_id: str) -> Optional[Comment]:
        comment = self.state.comments.get(comment_id)
        return replace(comment) if comment else None

    async def delete(self, comment_id: str) -> Optional[Comment]:
        return self.state.comments.pop(comment_id, None)

    async def list_for_post(self, post_id: str) -> List[Comment]:
        comments = [c for c in self.state.comments.values() if c.post_id == post_id]
        comments.sort(key=lambda c: c.created_at)
        return [replace(c) for c in comments]

    async def list_recent_by_user(self, user_id: str, limit: int) -> List[Comment]:
        comments = [c for c in self.state.comments.values() if c.user_id == user_id]
        comments.sort(key=lambda c: c.created_at, reverse=True)
        return [replace(c) for c in comments[:limit]]


class FakeConnectionRepository(_Repo, IConnectionRepository):
    async def insert(self, requester_id: str, receiver_id: str) -> Optional[Connection]:
        if await self.find_between(requester_id, receiver_id):
            return None
        connection = Connection(
            id=_new_id(),
            requester_id=requester_id,
            receiver_id=receiver_id,
            status=ConnectionStatus.PENDING,
            created_at=self.now(),
        )
        self.state.connections[connection.id] = connection
        return replace(connection)

    async def find_by_id(self, connection_id: str) -> Optional[Connection]:
        connection = self.state.connections.get(connection_id)
        return replace(connection) if connection else None

    async def find_between(self, user_a: str, user_b: str) -> Optional[Connection]:
        pair = {user_a, user_b}
        for connection in self.state.connections.values():
            if {connection.requester_id, connection.receiver_id} == pair:
                return replace(connection)
        return None

    async def transition(
        self,
        connection_id: str,
        from_status: ConnectionStatus,
        to_status: ConnectionStatus,
    ) -> Optional[Connection]:
        connection = self.state.connections.get(connection_id)
        if not connection or connection.status != from_status:
            return None
        connection.status = to_status
        connection.updated_at = self.now()
        return replace(connection)

    async def delete(self, connection_id: str) -> Optional[Connection]:
        return self.state.connections.pop(connection_id, None)

    async def related_user_ids(self, user_id: str) -> List[str]:
        return [
            c.other_party(user_id)
            for c in self.state.connections.values()
            if user_id in (c.requester_id, c.receiver_id)
        ]

    async def list_for_user(
        self, user_id: str, status: Optional[ConnectionStatus] = None, limit: Optional[int] = None
    ) -> List[Connection]:
        connections = [
            c for c in self.state.connections.values()
            if user_id in (c.requester_id, c.receiver_id)
            and (status is None or c.status == status)
        ]
        connections.sort(key=lambda c: c.effective_at, reverse=True)
        if limit is not None:
            connections = connections[:limit]
        return [replace(c) for c in connections]


class FakeNotificationRepository(_Repo, INotificationRepository):
    async def insert(
        self,
        user_id: str,
        actor_id: str,
        type: str,
        message: str,
        target_id: Optional[str] = None,
        target_type: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            id=_new_id(),
            user_id=user_id,
            actor_id=actor_id,
            type=NotificationType(type),
            message=message,
            target_id=target_id,
            target_type=TargetType(target_type) if target_type else None,
            read=False,
            created_at=self.now(),
        )
        self.state.notifications[notification.id] = notification
        return replace(notification)

    async def mark_read(self, notification_id: str) -> Optional[str]:
        notification = self.state.notifications.get(notification_id)
        if not notification:
            return None
        notification.read = True
        return notification.user_id

    async def mark_all_read(self, user_id: str) -> int:
        updated = 0
        for notification in self.state.notifications.values():
            if notification.user_id == user_id and not notification.read:
                notification.read = True
                updated += 1
        return updated

    async def count_unread(self, user_id: str) -> int:
        return sum(
            1 for n in self.state.notifications.values()
            if n.user_id == user_id and not n.read
        )

    async def list_for_user(
        self, user_id: str, read: Optional[bool], limit: int
    ) -> List[NotificationWithActor]:
        notifications = [
            n for n in self.state.notifications.values()
            if n.user_id == user_id and (read is None or n.read == read)
        ]
        notifications.sort(key=lambda n: n.created_at, reverse=True)

        results = []
        for notification in notifications[:limit]:
            actor = self.state.users.get(notification.actor_id)
            results.append(
                NotificationWithActor(
                    notification=replace(notification),
                    actor=actor.public_profile() if actor else None,
                )
            )
        return results


class FakeAnalyticsEventRepository(_Repo, IAnalyticsEventRepository):
    async def insert(self, user_id: str, event_type: str, payload: Dict[str, Any]) -> AnalyticsEvent:
        event = AnalyticsEvent(
            id=_new_id(),
            user_id=user_id,
            event_type=event_type,
            payload=dict(payload),
            created_at=self.now(),
        )
        self.state.analytics[event.id] = event
        return replace(event)

    async def list_for_user(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[AnalyticsEvent]:
        events = [
            e for e in self.state.analytics.values()
            if e.user_id == user_id
            and (start is None or e.created_at >= start)
            and (end is None or e.created_at <= end)
        ]
        events.sort(key=lambda e: e.created_at)
        return [replace(e) for e in events]


class FakeTrendingTopicRepository(_Repo, ITrendingTopicRepository):
    async def upsert(self, tag: str, count: int, growth_rate: float) -> TrendingTopic:
        topic = self.state.trending.get(tag)
        if topic is None:
            topic = TrendingTopic(id=_new_id(), tag=tag)
            self.state.trending[tag] = topic
        topic.count = count
        topic.growth_rate = growth_rate
        topic.last_updated = self.now()
        return replace(topic)

    async def list_ranked(self, limit: int) -> List[TrendingTopic]:
        topics = sorted(
            self.state.trending.values(), key=lambda t: (-t.growth_rate, -t.count)
        )
        return [replace(t) for t in topics[:limit]]


class FakeBusinessMetricRepository(_Repo, IBusinessMetricRepository):
    async def find_by_user(self, user_id: str) -> Optional[BusinessMetric]:
        metric = self.state.metrics.get(user_id)
        return replace(metric) if metric else None

    async def insert_default(self, user_id: str) -> None:
        if user_id not in self.state.metrics:
            self.state.metrics[user_id] = BusinessMetric(
                id=_new_id(), user_id=user_id, last_updated=self.now()
            )

    async def upsert(
        self,
        user_id: str,
        profile_views: int,
        network_growth: int,
        opportunities: int,
        engagement_score: int,
    ) -> BusinessMetric:
        await self.insert_default(user_id)
        metric = self.state.metrics[user_id]
        metric.profile_views = profile_views
        metric.network_growth = network_growth
        metric.opportunities = opportunities
        metric.engagement_score = engagement_score
        metric.last_updated = self.now()
        return replace(metric)


class FakeUnitOfWork(IUnitOfWork):
    def __init__(self, gateway: "InMemoryGateway"):
        self.users = FakeUserRepository(gateway)
        self.posts = FakePostRepository(gateway)
        self.likes = FakeLikeRepository(gateway)
        self.comments = FakeCommentRepository(gateway)
        self.connections = FakeConnectionRepository(gateway)
        self.notifications = FakeNotificationRepository(gateway)
        self.analytics = FakeAnalyticsEventRepository(gateway)
        self.trending = FakeTrendingTopicRepository(gateway)
        self.metrics = FakeBusinessMetricRepository(gateway)


class InMemoryGateway(IPersistenceGateway):
    """Serializes transactions with a lock; rolls back by restoring a snapshot."""

    def __init__(self):
        self.state = State()
        self._lock = asyncio.Lock()
        self.transactions = 0

    def now(self) -> datetime:
        """Strictly increasing clock, one millisecond per call."""
        self.state.ticks += 1
        return EPOCH + timedelta(milliseconds=self.state.ticks)

    @asynccontextmanager
    async def transaction(self):
        async with self._lock:
            snapshot = copy.deepcopy(self.state)
            self.transactions += 1
            try:
                yield FakeUnitOfWork(self)
            except BaseException:
                self.state = snapshot
                raise

    async def health_check(self) -> bool:
        return True

    # Seeding helpers, outside any transaction

    def add_user(self, username: str, business_score: int = 50, **fields) -> User:
        user = User(
            id=fields.pop("id", _new_id()),
            username=username,
            email=f"{username}@example.com",
            full_name=fields.pop("full_name", username.title()),
            business_score=business_score,
            created_at=fields.pop("created_at", self.now()),
            **fields,
        )
        self.state.users[user.id] = user
        return user

    def add_post(self, user_id: str, content: str = "Hello", created_at: Optional[datetime] = None) -> Post:
        post = Post(
            id=_new_id(),
            user_id=user_id,
            content=content,
            created_at=created_at or self.now(),
        )
        self.state.posts[post.id] = post
        return post

    def add_comment(self, post_id: str, user_id: str, created_at: datetime) -> Comment:
        comment = Comment(
            id=_new_id(), post_id=post_id, user_id=user_id, content="Nice", created_at=created_at
        )
        self.state.comments[comment.id] = comment
        self.state.posts[post_id].comments_count += 1
        return comment

    def add_connection(
        self,
        requester_id: str,
        receiver_id: str,
        status: ConnectionStatus = ConnectionStatus.ACCEPTED,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> Connection:
        connection = Connection(
            id=_new_id(),
            requester_id=requester_id,
            receiver_id=receiver_id,
            status=status,
            created_at=created_at or self.now(),
            updated_at=updated_at,
        )
        self.state.connections[connection.id] = connection
        return connection

    def post(self, post_id: str) -> Post:
        return self.state.posts[post_id]

    def user(self, user_id: str) -> User:
        return self.state.users[user_id]

    def like_rows(self, post_id: str) -> int:
        return sum(1 for like in self.state.likes.values() if like.post_id == post_id)

    def comment_rows(self, post_id: str) -> int:
        return sum(1 for c in self.state.comments.values() if c.post_id == post_id)


class MemoryCache(RedisCache):
    """RedisCache backed by a dict; values go through JSON like the real client."""

    def __init__(self):
        super().__init__()
        self.store: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[Any]:
        value = self.store.get(key)
        return json.loads(value) if value else None

    async def set(self, key: str, value: Any, ttl: int = 300):
        self.store[key] = json.dumps(value, default=str)

    async def delete(self, key: str):
        self.store.pop(key, None)

    async def delete_pattern(self, pattern: str):
        for key in fnmatch.filter(list(self.store), pattern):
            del self.store[key]
