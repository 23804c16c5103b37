"""
Activity feed aggregator - one user's posts, comments and accepted connections
"""
from typing import List

from ..config import settings
from ..domain.models import (
    ConnectionEvent,
    ConnectionStatus,
    FeedItem,
    FeedItemKind,
)
from ..domain.repositories import IPersistenceGateway


class ActivityFeedAggregator:
    """Merges three newest-first streams into one reverse-chronological feed"""

    def __init__(self, db: IPersistenceGateway):
        self.db = db

    async def activity_feed(
        self, user_id: str, limit: int = settings.DEFAULT_FEED_LIMIT
    ) -> List[FeedItem]:
        """
        Get a user's activity feed

        Each stream is capped at limit before the merge, so when one stream
        dominates recency the result may come from that stream alone.

        Args:
            user_id: User ID
            limit: Maximum number of items

        Returns:
            Feed items, newest first
        """
        limit = min(max(limit, 0), settings.MAX_PAGE_SIZE)
        if limit == 0:
            return []

        async with self.db.transaction() as uow:
            posts = await uow.posts.list_recent_by_user(user_id, limit)
            comments = await uow.comments.list_recent_by_user(user_id, limit)
            connections = await uow.connections.list_for_user(
                user_id, ConnectionStatus.ACCEPTED, limit
            )

        items = [
            FeedItem(FeedItemKind.POST, post.id, post.created_at, post)
            for post in posts
        ]
        items.extend(
            FeedItem(FeedItemKind.COMMENT, comment.id, comment.created_at, comment)
            for comment in comments
        )
        items.extend(
            FeedItem(
                FeedItemKind.CONNECTION,
                connection.id,
                connection.effective_at,
                ConnectionEvent(
                    connection_id=connection.id,
                    other_user_id=connection.other_party(user_id),
                    status=connection.status,
                ),
            )
            for connection in connections
        )

        items.sort(key=lambda item: item.occurred_at, reverse=True)
        return items[:limit]
