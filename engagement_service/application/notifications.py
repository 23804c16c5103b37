"""
Notification dispatcher - turns state changes elsewhere into Notification rows
"""
from typing import List, Optional, Union
import logging

from ..cache import RedisCache
from ..config import settings
from ..domain.exceptions import InvalidOperationError
from ..domain.models import (
    Notification,
    NotificationType,
    NotificationWithActor,
    TargetType,
)
from ..domain.repositories import IPersistenceGateway, IUnitOfWork

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Creates and reads notifications; has no state machine of its own"""

    def __init__(self, db: IPersistenceGateway, cache: RedisCache):
        self.db = db
        self.cache = cache

    async def notify(
        self,
        target_user_id: str,
        actor_id: str,
        type: Union[NotificationType, str],
        message: str,
        target_id: Optional[str] = None,
        target_type: Optional[Union[TargetType, str]] = None,
        uow: Optional[IUnitOfWork] = None,
    ) -> Notification:
        """
        Insert an unread notification

        Args:
            target_user_id: User who receives the notification
            actor_id: User whose action caused it
            type: Notification kind
            message: Human-readable text, rendered after the actor's name
            target_id: Optional entity the notification points at
            target_type: Kind of that entity
            uow: Unit of work of the calling operation; when given the row is
                written in the caller's transaction and the caller must call
                invalidate_unread() after commit

        Returns:
            The created Notification
        """
        try:
            kind = NotificationType(type).value
            target_kind = TargetType(target_type).value if target_type else None
        except ValueError as e:
            raise InvalidOperationError(str(e))

        if uow is not None:
            return await uow.notifications.insert(
                target_user_id, actor_id, kind, message, target_id, target_kind
            )

        async with self.db.transaction() as own_uow:
            notification = await own_uow.notifications.insert(
                target_user_id, actor_id, kind, message, target_id, target_kind
            )

        await self.invalidate_unread(target_user_id)
        return notification

    async def invalidate_unread(self, *user_ids: str):
        """Drop cached unread counts after notifications were committed"""
        for user_id in user_ids:
            await self.cache.invalidate_unread_count(user_id)

    async def mark_read(self, notification_id: str) -> bool:
        """Mark one notification read; False if it does not exist"""
        async with self.db.transaction() as uow:
            owner_id = await uow.notifications.mark_read(notification_id)

        if owner_id is None:
            return False
        await self.invalidate_unread(owner_id)
        return True

    async def mark_all_read(self, user_id: str) -> int:
        """Mark every notification of user read, return how many changed"""
        async with self.db.transaction() as uow:
            updated = await uow.notifications.mark_all_read(user_id)

        await self.invalidate_unread(user_id)
        return updated

    async def unread_count(self, user_id: str) -> int:
        """Number of unread notifications for user"""
        cached = await self.cache.get_unread_count(user_id)
        if cached is not None:
            return cached

        async with self.db.transaction() as uow:
            count = await uow.notifications.count_unread(user_id)

        await self.cache.set_unread_count(user_id, count)
        return count

    async def list_for_user(
        self,
        user_id: str,
        read: Optional[bool] = None,
        limit: int = settings.DEFAULT_NOTIFICATION_LIMIT,
    ) -> List[NotificationWithActor]:
        """Notifications newest first, optionally filtered by read state"""
        limit = min(max(limit, 0), settings.MAX_PAGE_SIZE)
        if limit == 0:
            return []

        async with self.db.transaction() as uow:
            return await uow.notifications.list_for_user(user_id, read, limit)
