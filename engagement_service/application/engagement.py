"""
Engagement counters - likes and comments with their denormalized post counters

Every insert or delete of a Like/Comment row is paired with the counter
adjustment inside the same transaction, so the counter never drifts from
the number of rows.
"""
from typing import List, Optional, Tuple
import logging

from ..kafka_producer import KafkaProducerManager
from ..domain.exceptions import InvalidOperationError, NotFoundError
from ..domain.models import (
    Comment,
    NotificationType,
    Post,
    PublicProfile,
    TargetType,
)
from ..domain.repositories import IPersistenceGateway
from .notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 2000


class EngagementCounters:
    """Business logic for likes and comments"""

    def __init__(
        self,
        db: IPersistenceGateway,
        notifier: NotificationDispatcher,
        kafka: KafkaProducerManager,
    ):
        self.db = db
        self.notifier = notifier
        self.kafka = kafka

    async def get_post(self, post_id: str) -> Post:
        """Get post (with its counters) by ID"""
        async with self.db.transaction() as uow:
            post = await uow.posts.find_by_id(post_id)

        if not post:
            raise NotFoundError("Post", post_id)
        return post

    async def like(self, post_id: str, user_id: str) -> bool:
        """
        Like a post

        Returns:
            True if the like was recorded, False if the user already liked it

        Raises:
            NotFoundError: Unknown post
        """
        async with self.db.transaction() as uow:
            post = await uow.posts.find_by_id(post_id)
            if not post:
                raise NotFoundError("Post", post_id)

            # Unique (post_id, user_id) is the guard; no separate existence check
            like = await uow.likes.insert(post_id, user_id)
            if like is None:
                return False

            likes_count = await uow.posts.adjust_likes_count(post_id, 1)

            notified = post.user_id != user_id
            if notified:
                await self.notifier.notify(
                    post.user_id,
                    user_id,
                    NotificationType.LIKE,
                    "liked your post",
                    target_id=post_id,
                    target_type=TargetType.POST,
                    uow=uow,
                )

        if notified:
            await self.notifier.invalidate_unread(post.user_id)
        await self.kafka.publish_post_liked(post_id, post.user_id, user_id, likes_count)

        return True

    async def unlike(self, post_id: str, user_id: str) -> bool:
        """
        Remove a like

        Returns:
            False if the user had not liked the post
        """
        async with self.db.transaction() as uow:
            removed = await uow.likes.delete(post_id, user_id)
            if not removed:
                return False

            likes_count = await uow.posts.adjust_likes_count(post_id, -1)

        await self.kafka.publish_post_unliked(post_id, user_id, likes_count)
        return True

    async def is_liked(self, post_id: str, user_id: str) -> bool:
        """Check if user liked post"""
        async with self.db.transaction() as uow:
            return await uow.likes.exists(post_id, user_id)

    async def add_comment(self, post_id: str, user_id: str, content: str) -> Comment:
        """
        Comment on a post

        Raises:
            NotFoundError: Unknown post
            InvalidOperationError: Empty or oversized content
        """
        content = (content or "").strip()
        if not content:
            raise InvalidOperationError("Comment content cannot be empty")
        if len(content) > MAX_COMMENT_LENGTH:
            raise InvalidOperationError(
                f"Comment content cannot exceed {MAX_COMMENT_LENGTH} characters"
            )

        async with self.db.transaction() as uow:
            post = await uow.posts.find_by_id(post_id)
            if not post:
                raise NotFoundError("Post", post_id)

            comment = await uow.comments.insert(post_id, user_id, content)
            await uow.posts.adjust_comments_count(post_id, 1)

            notified = post.user_id != user_id
            if notified:
                await self.notifier.notify(
                    post.user_id,
                    user_id,
                    NotificationType.COMMENT,
                    "commented on your post",
                    target_id=post_id,
                    target_type=TargetType.POST,
                    uow=uow,
                )

        logger.info(f"Comment {comment.id} added to post {post_id}")

        if notified:
            await self.notifier.invalidate_unread(post.user_id)
        await self.kafka.publish_comment_created(comment.id, post_id, user_id)

        return comment

    async def delete_comment(self, comment_id: str) -> bool:
        """
        Delete a comment

        Returns:
            False if the comment does not exist
        """
        async with self.db.transaction() as uow:
            comment = await uow.comments.delete(comment_id)
            if comment is None:
                return False

            await uow.posts.adjust_comments_count(comment.post_id, -1)

        await self.kafka.publish_comment_deleted(comment_id, comment.post_id)
        return True

    async def list_comments(self, post_id: str) -> List[Tuple[Comment, Optional[PublicProfile]]]:
        """Comments on a post, oldest first, with each author's profile"""
        async with self.db.transaction() as uow:
            comments = await uow.comments.list_for_post(post_id)
            authors = await uow.users.find_by_ids(list({c.user_id for c in comments}))

        results = []
        for comment in comments:
            author = authors.get(comment.user_id)
            results.append((comment, author.public_profile() if author else None))
        return results
