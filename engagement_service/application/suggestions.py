"""
Suggestion engine - who to connect with next
"""
from dataclasses import asdict
from datetime import datetime
from typing import List
import logging

from ..cache import RedisCache
from ..config import settings
from ..domain.models import User
from ..domain.repositories import IPersistenceGateway

logger = logging.getLogger(__name__)


def _user_from_cache(data: dict) -> User:
    created_at = data.get("created_at")
    return User(**{
        **data,
        "created_at": datetime.fromisoformat(created_at) if created_at else None,
    })


class SuggestionEngine:
    """Ranks users the caller has no relationship with by business score"""

    def __init__(self, db: IPersistenceGateway, cache: RedisCache):
        self.db = db
        self.cache = cache

    async def suggest(
        self, user_id: str, limit: int = settings.DEFAULT_SUGGESTION_LIMIT
    ) -> List[User]:
        """
        Get connection suggestions

        Any connection row touching the user excludes the other side,
        whatever its status: rejected and blocked users are not suggested again.

        Args:
            user_id: User asking for suggestions
            limit: Maximum number of suggestions

        Returns:
            Users ordered by business score, highest first
        """
        limit = min(max(limit, 0), settings.MAX_PAGE_SIZE)
        if limit == 0:
            return []

        cached = await self.cache.get_suggestions(user_id, limit)
        if cached is not None:
            return [_user_from_cache(item) for item in cached]

        async with self.db.transaction() as uow:
            related = set(await uow.connections.related_user_ids(user_id))
            related.add(user_id)
            users = await uow.users.list_ranked_excluding(sorted(related), limit)

        logger.debug(f"{len(users)} suggestions for {user_id} ({len(related) - 1} excluded)")

        await self.cache.set_suggestions(user_id, limit, [asdict(user) for user in users])
        return users
