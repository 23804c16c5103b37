"""
Repository implementations - Data access layer (PostgreSQL via asyncpg)
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import asyncpg

from ...domain.models import (
    User,
    PublicProfile,
    Post,
    Like,
    Comment,
    Connection,
    ConnectionStatus,
    Notification,
    NotificationType,
    NotificationWithActor,
    TargetType,
    AnalyticsEvent,
    TrendingTopic,
    BusinessMetric,
)
from ...domain.repositories import (
    IUserRepository,
    IPostRepository,
    ILikeRepository,
    ICommentRepository,
    IConnectionRepository,
    INotificationRepository,
    IAnalyticsEventRepository,
    ITrendingTopicRepository,
    IBusinessMetricRepository,
    IUnitOfWork,
)

USER_COLUMNS = """
    id, username, email, full_name, business_name, business_type, location,
    avatar, bio, website, connections, business_score, created_at
"""

POST_COLUMNS = """
    id, user_id, content, title, image_url, post_type, tags,
    likes_count, comments_count, shares_count, created_at, updated_at
"""

CONNECTION_COLUMNS = "id, requester_id, receiver_id, status, created_at, updated_at"

NOTIFICATION_COLUMNS = """
    id, user_id, actor_id, type, message, target_id, target_type, read, created_at
"""


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserRepository(IUserRepository):
    """User repository implementation using PostgreSQL"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    def _row_to_user(self, row: Optional[asyncpg.Record]) -> Optional[User]:
        """Convert database row to User model"""
        if not row:
            return None
        return User(**dict(row))

    async def find_by_id(self, user_id: str) -> Optional[User]:
        """Find user by ID"""
        row = await self.conn.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
            user_id
        )
        return self._row_to_user(row)

    async def find_by_ids(self, user_ids: Sequence[str]) -> Dict[str, User]:
        """Find several users, keyed by ID"""
        if not user_ids:
            return {}
        rows = await self.conn.fetch(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = ANY($1::text[])",
            list(user_ids)
        )
        return {row["id"]: self._row_to_user(row) for row in rows}

    async def adjust_connections(self, user_id: str, delta: int) -> None:
        """Add delta to the accepted-connection count, never below zero"""
        await self.conn.execute(
            """
            UPDATE users
            SET connections = GREATEST(connections + $2, 0)
            WHERE id = $1
            """,
            user_id,
            delta
        )

    async def list_ranked_excluding(self, excluded_ids: Sequence[str], limit: int) -> List[User]:
        """Users not in excluded_ids, highest business score first"""
        rows = await self.conn.fetch(
            f"""
            SELECT {USER_COLUMNS}
            FROM users
            WHERE NOT (id = ANY($1::text[]))
            ORDER BY business_score DESC, username ASC
            LIMIT $2
            """,
            list(excluded_ids),
            limit
        )
        return [self._row_to_user(row) for row in rows]


class PostRepository(IPostRepository):
    """Post repository implementation using PostgreSQL"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    def _row_to_post(self, row: Optional[asyncpg.Record]) -> Optional[Post]:
        """Convert database row to Post model"""
        if not row:
            return None
        data = dict(row)
        data["tags"] = list(data.get("tags") or [])
        return Post(**data)

    async def find_by_id(self, post_id: str) -> Optional[Post]:
        """Find post by ID"""
        row = await self.conn.fetchrow(
            f"SELECT {POST_COLUMNS} FROM posts WHERE id = $1",
            post_id
        )
        return self._row_to_post(row)

    async def _adjust(self, column: str, post_id: str, delta: int) -> int:
        row = await self.conn.fetchrow(
            f"""
            UPDATE posts
            SET {column} = GREATEST({column} + $2, 0)
            WHERE id = $1
            RETURNING {column}
            """,
            post_id,
            delta
        )
        return row[column] if row else 0

    async def adjust_likes_count(self, post_id: str, delta: int) -> int:
        """Add delta to likes_count (floored at zero) and return the new value"""
        return await self._adjust("likes_count", post_id, delta)

    async def adjust_comments_count(self, post_id: str, delta: int) -> int:
        """Add delta to comments_count (floored at zero) and return the new value"""
        return await self._adjust("comments_count", post_id, delta)

    async def list_recent_by_user(self, user_id: str, limit: int) -> List[Post]:
        """Posts authored by user, newest first"""
        rows = await self.conn.fetch(
            f"""
            SELECT {POST_COLUMNS}
            FROM posts
            WHERE user_id = $1
            ORDER BY created_at DESC
            LIMIT $2
            """,
            user_id,
            limit
        )
        return [self._row_to_post(row) for row in rows]


class LikeRepository(ILikeRepository):
    """Like repository implementation using PostgreSQL"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def insert(self, post_id: str, user_id: str) -> Optional[Like]:
        """Insert a like; None if the (post, user) pair already exists"""
        row = await self.conn.fetchrow(
            """
            INSERT INTO likes (id, post_id, user_id, created_at)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT ON CONSTRAINT likes_post_user_key DO NOTHING
            RETURNING id, post_id, user_id, created_at
            """,
            _new_id(),
            post_id,
            user_id,
            _now()
        )
        return Like(**dict(row)) if row else None

    async def delete(self, post_id: str, user_id: str) -> bool:
        """Delete the like for the pair; False if there was none"""
        row = await self.conn.fetchrow(
            """
            DELETE FROM likes
            WHERE post_id = $1 AND user_id = $2
            RETURNING id
            """,
            post_id,
            user_id
        )
        return row is not None

    async def exists(self, post_id: str, user_id: str) -> bool:
        """Check if user liked post"""
        return await self.conn.fetchval(
            "SELECT EXISTS(SELECT 1 FROM likes WHERE post_id = $1 AND user_id = $2)",
            post_id,
            user_id
        )


class CommentRepository(ICommentRepository):
    """Comment repository implementation using PostgreSQL"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    def _row_to_comment(self, row: Optional[asyncpg.Record]) -> Optional[Comment]:
        """Convert database row to Comment model"""
        if not row:
            return None
        return Comment(**dict(row))

    async def insert(self, post_id: str, user_id: str, content: str) -> Comment:
        """Create a new comment"""
        row = await self.conn.fetchrow(
            """
            INSERT INTO comments (id, post_id, user_id, content, created_at)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING id, post_id, user_id, content, created_at
            """,
            _new_id(),
            post_id,
            user_id,
            content,
            _now()
        )
        return self._row_to_comment(row)

    async def find_by_id(self, comment_id: str) -> Optional[Comment]:
        """Find comment by ID"""
        row = await self.conn.fetchrow(
            "SELECT id, post_id, user_id, content, created_at FROM comments WHERE id = $1",
            comment_id
        )
        return self._row_to_comment(row)

    async def delete(self, comment_id: str) -> Optional[Comment]:
        """Delete comment and return the deleted row, None if absent"""
        row = await self.conn.fetchrow(
            """
            DELETE FROM comments
            WHERE id = $1
            RETURNING id, post_id, user_id, content, created_at
            """,
            comment_id
        )
        return self._row_to_comment(row)

    async def list_for_post(self, post_id: str) -> List[Comment]:
        """Comments on a post, oldest first"""
        rows = await self.conn.fetch(
            """
            SELECT id, post_id, user_id, content, created_at
            FROM comments
            WHERE post_id = $1
            ORDER BY created_at ASC
            """,
            post_id
        )
        return [self._row_to_comment(row) for row in rows]

    async def list_recent_by_user(self, user_id: str, limit: int) -> List[Comment]:
        """Comments authored by user, newest first"""
        rows = await self.conn.fetch(
            """
            SELECT id, post_id, user_id, content, created_at
            FROM comments
            WHERE user_id = $1
            ORDER BY created_at DESC
            LIMIT $2
            """,
            user_id,
            limit
        )
        return [self._row_to_comment(row) for row in rows]


class ConnectionRepository(IConnectionRepository):
    """Connection repository implementation using PostgreSQL"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    def _row_to_connection(self, row: Optional[asyncpg.Record]) -> Optional[Connection]:
        """Convert database row to Connection model"""
        if not row:
            return None
        data = dict(row)
        data["status"] = ConnectionStatus(data["status"])
        return Connection(**data)

    async def insert(self, requester_id: str, receiver_id: str) -> Optional[Connection]:
        """Insert a pending connection; None if the unordered pair is taken"""
        # Conflict target is the (LEAST, GREATEST) unique index
        row = await self.conn.fetchrow(
            f"""
            INSERT INTO connections (id, requester_id, receiver_id, status, created_at)
            VALUES ($1, $2, $3, 'pending', $4)
            ON CONFLICT DO NOTHING
            RETURNING {CONNECTION_COLUMNS}
            """,
            _new_id(),
            requester_id,
            receiver_id,
            _now()
        )
        return self._row_to_connection(row)

    async def find_by_id(self, connection_id: str) -> Optional[Connection]:
        """Find connection by ID"""
        row = await self.conn.fetchrow(
            f"SELECT {CONNECTION_COLUMNS} FROM connections WHERE id = $1",
            connection_id
        )
        return self._row_to_connection(row)

    async def find_between(self, user_a: str, user_b: str) -> Optional[Connection]:
        """Find the connection relating two users, in either direction"""
        row = await self.conn.fetchrow(
            f"""
            SELECT {CONNECTION_COLUMNS}
            FROM connections
            WHERE (requester_id = $1 AND receiver_id = $2)
               OR (requester_id = $2 AND receiver_id = $1)
            """,
            user_a,
            user_b
        )
        return self._row_to_connection(row)

    async def transition(
        self,
        connection_id: str,
        from_status: ConnectionStatus,
        to_status: ConnectionStatus,
    ) -> Optional[Connection]:
        """Set status only if the row is currently in from_status"""
        row = await self.conn.fetchrow(
            f"""
            UPDATE connections
            SET status = $3, updated_at = $4
            WHERE id = $1 AND status = $2
            RETURNING {CONNECTION_COLUMNS}
            """,
            connection_id,
            from_status.value,
            to_status.value,
            _now()
        )
        return self._row_to_connection(row)

    async def delete(self, connection_id: str) -> Optional[Connection]:
        """Delete connection and return the deleted row, None if absent"""
        row = await self.conn.fetchrow(
            f"""
            DELETE FROM connections
            WHERE id = $1
            RETURNING {CONNECTION_COLUMNS}
            """,
            connection_id
        )
        return self._row_to_connection(row)

    async def related_user_ids(self, user_id: str) -> List[str]:
        """Every user sharing a connection row with user_id, any status"""
        rows = await self.conn.fetch(
            """
            SELECT CASE WHEN requester_id = $1 THEN receiver_id ELSE requester_id END AS other_id
            FROM connections
            WHERE requester_id = $1 OR receiver_id = $1
            """,
            user_id
        )
        return [row["other_id"] for row in rows]

    async def list_for_user(
        self, user_id: str, status: Optional[ConnectionStatus] = None, limit: Optional[int] = None
    ) -> List[Connection]:
        """Connections touching user, most recently changed first"""
        # LIMIT NULL means no limit in PostgreSQL
        rows = await self.conn.fetch(
            f"""
            SELECT {CONNECTION_COLUMNS}
            FROM connections
            WHERE (requester_id = $1 OR receiver_id = $1)
              AND ($2::text IS NULL OR status = $2)
            ORDER BY COALESCE(updated_at, created_at) DESC
            LIMIT $3
            """,
            user_id,
            status.value if status else None,
            limit
        )
        return [self._row_to_connection(row) for row in rows]


class NotificationRepository(INotificationRepository):
    """Notification repository implementation using PostgreSQL"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    def _row_to_notification(self, row: asyncpg.Record) -> Notification:
        """Convert database row to Notification model"""
        return Notification(
            id=row["id"],
            user_id=row["user_id"],
            actor_id=row["actor_id"],
            type=NotificationType(row["type"]),
            message=row["message"],
            target_id=row["target_id"],
            target_type=TargetType(row["target_type"]) if row["target_type"] else None,
            read=row["read"],
            created_at=row["created_at"],
        )

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
        row = await self.conn.fetchrow(
            f"""
            INSERT INTO notifications
                (id, user_id, actor_id, type, message, target_id, target_type, read, created_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7, false, $8)
            RETURNING {NOTIFICATION_COLUMNS}
            """,
            _new_id(),
            user_id,
            actor_id,
            type,
            message,
            target_id,
            target_type,
            _now()
        )
        return self._row_to_notification(row)

    async def mark_read(self, notification_id: str) -> Optional[str]:
        """Set read flag, return the owning user id; None if the notification does not exist"""
        return await self.conn.fetchval(
            "UPDATE notifications SET read = true WHERE id = $1 RETURNING user_id",
            notification_id
        )

    async def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of user as read, return how many"""
        rows = await self.conn.fetch(
            "UPDATE notifications SET read = true WHERE user_id = $1 AND NOT read RETURNING id",
            user_id
        )
        return len(rows)

    async def count_unread(self, user_id: str) -> int:
        """Count unread notifications for user"""
        return await self.conn.fetchval(
            "SELECT COUNT(*) FROM notifications WHERE user_id = $1 AND NOT read",
            user_id
        )

    async def list_for_user(
        self, user_id: str, read: Optional[bool], limit: int
    ) -> List[NotificationWithActor]:
        """Notifications newest first, joined with the actor profile"""
        rows = await self.conn.fetch(
            """
            SELECT n.id, n.user_id, n.actor_id, n.type, n.message, n.target_id,
                   n.target_type, n.read, n.created_at,
                   u.username AS actor_username, u.full_name AS actor_full_name,
                   u.business_name AS actor_business_name, u.avatar AS actor_avatar
            FROM notifications n
            LEFT JOIN users u ON u.id = n.actor_id
            WHERE n.user_id = $1
              AND ($2::boolean IS NULL OR n.read = $2)
            ORDER BY n.created_at DESC
            LIMIT $3
            """,
            user_id,
            read,
            limit
        )

        results = []
        for row in rows:
            actor = None
            if row["actor_username"] is not None:
                actor = PublicProfile(
                    id=row["actor_id"],
                    username=row["actor_username"],
                    full_name=row["actor_full_name"],
                    business_name=row["actor_business_name"],
                    avatar=row["actor_avatar"],
                )
            results.append(NotificationWithActor(self._row_to_notification(row), actor))
        return results


class AnalyticsEventRepository(IAnalyticsEventRepository):
    """Analytics event repository implementation using PostgreSQL"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def insert(self, user_id: str, event_type: str, payload: Dict[str, Any]) -> AnalyticsEvent:
        """Append an event"""
        row = await self.conn.fetchrow(
            """
            INSERT INTO analytics_events (id, user_id, event_type, payload, created_at)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING id, user_id, event_type, payload, created_at
            """,
            _new_id(),
            user_id,
            event_type,
            payload,
            _now()
        )
        return AnalyticsEvent(**dict(row))

    async def list_for_user(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[AnalyticsEvent]:
        """Events for user within [start, end], oldest first"""
        rows = await self.conn.fetch(
            """
            SELECT id, user_id, event_type, payload, created_at
            FROM analytics_events
            WHERE user_id = $1
              AND ($2::timestamptz IS NULL OR created_at >= $2)
              AND ($3::timestamptz IS NULL OR created_at <= $3)
            ORDER BY created_at ASC
            """,
            user_id,
            start,
            end
        )
        return [AnalyticsEvent(**dict(row)) for row in rows]


class TrendingTopicRepository(ITrendingTopicRepository):
    """Trending topic repository implementation using PostgreSQL"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def upsert(self, tag: str, count: int, growth_rate: float) -> TrendingTopic:
        """Insert or overwrite the row for tag"""
        row = await self.conn.fetchrow(
            """
            INSERT INTO trending_topics (id, tag, count, growth_rate, last_updated)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (tag) DO UPDATE
            SET count = EXCLUDED.count,
                growth_rate = EXCLUDED.growth_rate,
                last_updated = EXCLUDED.last_updated
            RETURNING id, tag, count, growth_rate, last_updated
            """,
            _new_id(),
            tag,
            count,
            growth_rate,
            _now()
        )
        return TrendingTopic(**dict(row))

    async def list_ranked(self, limit: int) -> List[TrendingTopic]:
        """Growth rate desc, then count desc"""
        rows = await self.conn.fetch(
            """
            SELECT id, tag, count, growth_rate, last_updated
            FROM trending_topics
            ORDER BY growth_rate DESC, count DESC
            LIMIT $1
            """,
            limit
        )
        return [TrendingTopic(**dict(row)) for row in rows]


class BusinessMetricRepository(IBusinessMetricRepository):
    """Business metric repository implementation using PostgreSQL"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def find_by_user(self, user_id: str) -> Optional[BusinessMetric]:
        """Find metrics row for user"""
        row = await self.conn.fetchrow(
            """
            SELECT id, user_id, profile_views, network_growth, opportunities,
                   engagement_score, last_updated
            FROM business_metrics
            WHERE user_id = $1
            """,
            user_id
        )
        return BusinessMetric(**dict(row)) if row else None

    async def insert_default(self, user_id: str) -> None:
        """Insert a zeroed row unless one already exists"""
        await self.conn.execute(
            """
            INSERT INTO business_metrics (id, user_id, last_updated)
            VALUES ($1, $2, $3)
            ON CONFLICT (user_id) DO NOTHING
            """,
            _new_id(),
            user_id,
            _now()
        )

    async def upsert(
        self,
        user_id: str,
        profile_views: int,
        network_growth: int,
        opportunities: int,
        engagement_score: int,
    ) -> BusinessMetric:
        """Insert or overwrite the metrics row for user"""
        row = await self.conn.fetchrow(
            """
            INSERT INTO business_metrics
                (id, user_id, profile_views, network_growth, opportunities,
                 engagement_score, last_updated)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            ON CONFLICT (user_id) DO UPDATE
            SET profile_views = EXCLUDED.profile_views,
                network_growth = EXCLUDED.network_growth,
                opportunities = EXCLUDED.opportunities,
                engagement_score = EXCLUDED.engagement_score,
                last_updated = EXCLUDED.last_updated
            RETURNING id, user_id, profile_views, network_growth, opportunities,
                      engagement_score, last_updated
            """,
            _new_id(),
            user_id,
            profile_views,
            network_growth,
            opportunities,
            engagement_score,
            _now()
        )
        return BusinessMetric(**dict(row))


class PostgresUnitOfWork(IUnitOfWork):
    """All repositories bound to one connection (and its open transaction)"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn
        self.users = UserRepository(conn)
        self.posts = PostRepository(conn)
        self.likes = LikeRepository(conn)
        self.comments = CommentRepository(conn)
        self.connections = ConnectionRepository(conn)
        self.notifications = NotificationRepository(conn)
        self.analytics = AnalyticsEventRepository(conn)
        self.trending = TrendingTopicRepository(conn)
        self.metrics = BusinessMetricRepository(conn)
