"""
Kafka producer for publishing engagement events
"""
from aiokafka import AIOKafkaProducer
from typing import Optional, Dict, Any
import json
import logging
from datetime import datetime, timezone

from .config import settings

logger = logging.getLogger(__name__)


class KafkaProducerManager:
    """Kafka producer manager for publishing events"""

    def __init__(self):
        self.producer: Optional[AIOKafkaProducer] = None

    async def start(self):
        """Start Kafka producer"""
        if not settings.KAFKA_ENABLED:
            logger.info("Kafka is disabled")
            return

        try:
            self.producer = AIOKafkaProducer(
                bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
                value_serializer=lambda v: json.dumps(v).encode("utf-8"),
                key_serializer=lambda v: str(v).encode("utf-8") if v else None,
            )
            await self.producer.start()
            logger.info("Kafka producer started successfully")
        except Exception as e:
            logger.warning(f"Failed to start Kafka producer: {e}. Continuing without Kafka.")
            self.producer = None

    async def stop(self):
        """Stop Kafka producer"""
        if self.producer:
            await self.producer.stop()
            logger.info("Kafka producer stopped")

    async def publish_event(self, topic: str, key: str, event_data: Dict[str, Any]):
        """
        Publish event to Kafka topic

        Args:
            topic: Kafka topic name
            key: Message key (usually user_id)
            event_data: Event data to publish
        """
        if not self.producer:
            logger.debug(f"Kafka disabled, skipping event: {topic}")
            return

        try:
            await self.producer.send(topic, value=event_data, key=key)
            logger.info(f"Published event to {topic}: {key}")
        except Exception as e:
            logger.error(f"Error publishing event to {topic}: {e}")

    @staticmethod
    def _timestamp() -> str:
        return datetime.now(timezone.utc).isoformat()

    # Connection events
    async def publish_connection_requested(
        self, connection_id: str, requester_id: str, receiver_id: str
    ):
        """Publish connection request event"""
        event_data = {
            "event_type": "connection_requested",
            "connection_id": connection_id,
            "requester_id": requester_id,
            "receiver_id": receiver_id,
            "timestamp": self._timestamp(),
        }
        await self.publish_event(
            settings.KAFKA_TOPIC_CONNECTION_REQUESTED, requester_id, event_data
        )

    async def publish_connection_updated(
        self, connection_id: str, requester_id: str, receiver_id: str, status: str
    ):
        """Publish connection status change event"""
        event_data = {
            "event_type": "connection_updated",
            "connection_id": connection_id,
            "requester_id": requester_id,
            "receiver_id": receiver_id,
            "status": status,
            "timestamp": self._timestamp(),
        }
        await self.publish_event(
            settings.KAFKA_TOPIC_CONNECTION_UPDATED, requester_id, event_data
        )

    async def publish_connection_removed(
        self, connection_id: str, requester_id: str, receiver_id: str
    ):
        """Publish connection removal event"""
        event_data = {
            "event_type": "connection_removed",
            "connection_id": connection_id,
            "requester_id": requester_id,
            "receiver_id": receiver_id,
            "timestamp": self._timestamp(),
        }
        await self.publish_event(
            settings.KAFKA_TOPIC_CONNECTION_REMOVED, requester_id, event_data
        )

    # Engagement events
    async def publish_post_liked(self, post_id: str, post_user_id: str, liker_id: str, likes_count: int):
        """Publish post liked event"""
        event_data = {
            "event_type": "post_liked",
            "post_id": post_id,
            "post_user_id": post_user_id,
            "liker_id": liker_id,
            "likes_count": likes_count,
            "timestamp": self._timestamp(),
        }
        await self.publish_event(settings.KAFKA_TOPIC_POST_LIKED, post_id, event_data)

    async def publish_post_unliked(self, post_id: str, user_id: str, likes_count: int):
        """Publish post unliked event"""
        event_data = {
            "event_type": "post_unliked",
            "post_id": post_id,
            "user_id": user_id,
            "likes_count": likes_count,
            "timestamp": self._timestamp(),
        }
        await self.publish_event(settings.KAFKA_TOPIC_POST_UNLIKED, post_id, event_data)

    async def publish_comment_created(self, comment_id: str, post_id: str, user_id: str):
        """Publish comment created event"""
        event_data = {
            "event_type": "comment_created",
            "comment_id": comment_id,
            "post_id": post_id,
            "user_id": user_id,
            "timestamp": self._timestamp(),
        }
        await self.publish_event(settings.KAFKA_TOPIC_COMMENT_CREATED, post_id, event_data)

    async def publish_comment_deleted(self, comment_id: str, post_id: str):
        """Publish comment deleted event"""
        event_data = {
            "event_type": "comment_deleted",
            "comment_id": comment_id,
            "post_id": post_id,
            "timestamp": self._timestamp(),
        }
        await self.publish_event(settings.KAFKA_TOPIC_COMMENT_DELETED, post_id, event_data)


# Global producer instance
kafka_producer = KafkaProducerManager()


async def get_kafka_producer() -> KafkaProducerManager:
    """Dependency for getting Kafka producer instance"""
    return kafka_producer
