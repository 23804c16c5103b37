"""
Trending topics ranker
"""
from dataclasses import asdict
from datetime import datetime
from typing import List
import logging

from ..cache import RedisCache
from ..config import settings
from ..domain.exceptions import InvalidOperationError
from ..domain.models import TrendingTopic
from ..domain.repositories import IPersistenceGateway

logger = logging.getLogger(__name__)

MAX_TAG_LENGTH = 100


def normalize_tag(tag: str) -> str:
    """'  #SmallBiz ' -> 'smallbiz'"""
    return (tag or "").strip().lstrip("#").strip().lower()


def _topic_from_cache(data: dict) -> TrendingTopic:
    last_updated = data.get("last_updated")
    return TrendingTopic(
        id=data["id"],
        tag=data["tag"],
        count=data["count"],
        growth_rate=data["growth_rate"],
        last_updated=datetime.fromisoformat(last_updated) if last_updated else None,
    )


class TrendingTopicsRanker:
    """One row per tag, ranked by growth rate with volume as tie-break"""

    def __init__(self, db: IPersistenceGateway, cache: RedisCache):
        self.db = db
        self.cache = cache

    async def upsert(self, tag: str, count: int, growth_rate: float) -> TrendingTopic:
        """
        Insert a topic or overwrite count/growth of an existing one

        Raises:
            InvalidOperationError: Empty tag, oversized tag or negative count
        """
        tag = normalize_tag(tag)
        if not tag:
            raise InvalidOperationError("Tag cannot be empty")
        if len(tag) > MAX_TAG_LENGTH:
            raise InvalidOperationError(f"Tag cannot exceed {MAX_TAG_LENGTH} characters")
        if count < 0:
            raise InvalidOperationError("Topic count cannot be negative")

        async with self.db.transaction() as uow:
            topic = await uow.trending.upsert(tag, count, float(growth_rate))

        logger.info(f"Trending topic '{tag}' set to count={count} growth={growth_rate}")
        await self.cache.invalidate_trending()
        return topic

    async def list_trending(self, limit: int = settings.DEFAULT_TRENDING_LIMIT) -> List[TrendingTopic]:
        """Topics ordered by growth rate desc, count desc, truncated to limit"""
        limit = min(max(limit, 0), settings.MAX_PAGE_SIZE)
        if limit == 0:
            return []

        cached = await self.cache.get_trending(limit)
        if cached is not None:
            return [_topic_from_cache(item) for item in cached]

        async with self.db.transaction() as uow:
            topics = await uow.trending.list_ranked(limit)

        await self.cache.set_trending(limit, [asdict(topic) for topic in topics])
        return topics
