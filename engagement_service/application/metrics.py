"""
Business metrics - one row per user, created on first read
"""
import logging

from ..domain.exceptions import InvalidOperationError, NotFoundError
from ..domain.models import BusinessMetric
from ..domain.repositories import IPersistenceGateway

logger = logging.getLogger(__name__)


class BusinessMetricsService:
    """Reads and overwrites per-user business metrics"""

    def __init__(self, db: IPersistenceGateway):
        self.db = db

    async def get_or_create(self, user_id: str) -> BusinessMetric:
        """
        Get a user's metrics, creating a zeroed row the first time

        Raises:
            NotFoundError: Unknown user
        """
        async with self.db.transaction() as uow:
            metric = await uow.metrics.find_by_user(user_id)
            if metric:
                return metric

            if not await uow.users.find_by_id(user_id):
                raise NotFoundError("User", user_id)

            # Concurrent first reads both land on the same row
            await uow.metrics.insert_default(user_id)
            metric = await uow.metrics.find_by_user(user_id)

        logger.info(f"Created default business metrics for {user_id}")
        return metric

    async def update(
        self,
        user_id: str,
        profile_views: int,
        network_growth: int,
        opportunities: int,
        engagement_score: int,
    ) -> BusinessMetric:
        """Overwrite a user's metrics"""
        if min(profile_views, opportunities) < 0:
            raise InvalidOperationError("Profile views and opportunities cannot be negative")

        async with self.db.transaction() as uow:
            if not await uow.users.find_by_id(user_id):
                raise NotFoundError("User", user_id)

            return await uow.metrics.upsert(
                user_id, profile_views, network_growth, opportunities, engagement_score
            )
