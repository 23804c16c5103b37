"""
Connection manager - connection-request state machine

pending -> accepted | rejected | blocked; the last three are terminal.
At most one connection exists per unordered pair of users.
"""
from typing import List, Optional, Tuple, Union
import logging

from ..cache import RedisCache
from ..kafka_producer import KafkaProducerManager
from ..domain.analytics import ConnectionMadePayload, payload_to_dict
from ..domain.exceptions import ConflictError, InvalidOperationError, NotFoundError
from ..domain.models import (
    Connection,
    ConnectionStatus,
    NotificationType,
    PublicProfile,
    TargetType,
)
from ..domain.repositories import IPersistenceGateway
from .notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (
    ConnectionStatus.ACCEPTED,
    ConnectionStatus.REJECTED,
    ConnectionStatus.BLOCKED,
)


class ConnectionManager:
    """Business logic for connection requests"""

    def __init__(
        self,
        db: IPersistenceGateway,
        notifier: NotificationDispatcher,
        cache: RedisCache,
        kafka: KafkaProducerManager,
    ):
        self.db = db
        self.notifier = notifier
        self.cache = cache
        self.kafka = kafka

    async def create_connection(self, requester_id: str, receiver_id: str) -> Connection:
        """
        Send a connection request

        Args:
            requester_id: User sending the request
            receiver_id: User receiving it

        Returns:
            The new pending Connection

        Raises:
            InvalidOperationError: requester and receiver are the same user
            NotFoundError: either user does not exist
            ConflictError: the two users are already related, in either direction
        """
        # Validate: Can't connect to yourself
        if requester_id == receiver_id:
            raise InvalidOperationError("Cannot connect to yourself")

        async with self.db.transaction() as uow:
            users = await uow.users.find_by_ids([requester_id, receiver_id])
            for user_id in (requester_id, receiver_id):
                if user_id not in users:
                    raise NotFoundError("User", user_id)

            # The unordered-pair unique index rejects duplicates atomically
            connection = await uow.connections.insert(requester_id, receiver_id)
            if connection is None:
                raise ConflictError("Connection request already exists")

            await self.notifier.notify(
                receiver_id,
                requester_id,
                NotificationType.CONNECTION,
                "sent you a connection request",
                target_id=connection.id,
                target_type=TargetType.USER,
                uow=uow,
            )

        logger.info(f"Connection {connection.id} requested: {requester_id} -> {receiver_id}")

        await self.notifier.invalidate_unread(receiver_id)
        await self.cache.invalidate_suggestions(requester_id, receiver_id)
        await self.kafka.publish_connection_requested(connection.id, requester_id, receiver_id)

        return connection

    async def update_status(
        self, connection_id: str, new_status: Union[ConnectionStatus, str]
    ) -> Connection:
        """
        Answer a pending connection request

        Accepting increments both users' connection counts, notifies the
        requester and records a connection_made event for each participant,
        all in one transaction. Other statuses only write the status.

        Raises:
            NotFoundError: Unknown connection
            InvalidOperationError: Unknown target status or connection not pending
        """
        try:
            new_status = ConnectionStatus(new_status)
        except ValueError:
            raise InvalidOperationError(f"Unknown connection status '{new_status}'")

        if new_status not in TERMINAL_STATUSES:
            raise InvalidOperationError("Connections cannot be moved back to pending")

        async with self.db.transaction() as uow:
            existing = await uow.connections.find_by_id(connection_id)
            if not existing:
                raise NotFoundError("Connection", connection_id)

            if not existing.is_pending():
                raise InvalidOperationError(
                    f"Connection is already {existing.status.value}"
                )

            # Conditional write: a concurrent answer leaves nothing to update
            connection = await uow.connections.transition(
                connection_id, ConnectionStatus.PENDING, new_status
            )
            if connection is None:
                raise InvalidOperationError("Connection is no longer pending")

            if new_status == ConnectionStatus.ACCEPTED:
                await uow.users.adjust_connections(connection.requester_id, 1)
                await uow.users.adjust_connections(connection.receiver_id, 1)

                await self.notifier.notify(
                    connection.requester_id,
                    connection.receiver_id,
                    NotificationType.CONNECTION,
                    "accepted your connection request",
                    target_id=connection.id,
                    target_type=TargetType.USER,
                    uow=uow,
                )

                for user_id, other_id in (
                    (connection.requester_id, connection.receiver_id),
                    (connection.receiver_id, connection.requester_id),
                ):
                    payload = ConnectionMadePayload(connected_user_id=other_id)
                    await uow.analytics.insert(
                        user_id, payload.event_type, payload_to_dict(payload)
                    )

        logger.info(f"Connection {connection_id} is now {new_status.value}")

        if new_status == ConnectionStatus.ACCEPTED:
            await self.notifier.invalidate_unread(connection.requester_id)

        await self.kafka.publish_connection_updated(
            connection.id, connection.requester_id, connection.receiver_id, new_status.value
        )

        return connection

    async def delete_connection(self, connection_id: str) -> bool:
        """
        Remove a connection of any status

        Returns:
            False if the connection does not exist
        """
        async with self.db.transaction() as uow:
            connection = await uow.connections.delete(connection_id)
            if connection is None:
                return False

            if connection.status == ConnectionStatus.ACCEPTED:
                await uow.users.adjust_connections(connection.requester_id, -1)
                await uow.users.adjust_connections(connection.receiver_id, -1)

        logger.info(f"Connection {connection_id} removed ({connection.status.value})")

        await self.cache.invalidate_suggestions(connection.requester_id, connection.receiver_id)
        await self.kafka.publish_connection_removed(
            connection.id, connection.requester_id, connection.receiver_id
        )

        return True

    async def connection_exists(self, user_a: str, user_b: str) -> bool:
        """Check whether any connection relates the two users, in either direction"""
        async with self.db.transaction() as uow:
            return await uow.connections.find_between(user_a, user_b) is not None

    async def get_connection(self, connection_id: str) -> Connection:
        """Get connection by ID"""
        async with self.db.transaction() as uow:
            connection = await uow.connections.find_by_id(connection_id)

        if not connection:
            raise NotFoundError("Connection", connection_id)
        return connection

    async def list_user_connections(
        self,
        user_id: str,
        status: Optional[Union[ConnectionStatus, str]] = ConnectionStatus.ACCEPTED,
    ) -> List[Tuple[Connection, Optional[PublicProfile]]]:
        """
        Get a user's connections with the other participant's profile

        Args:
            user_id: User ID
            status: Only connections in this status; None for all

        Returns:
            List of (connection, other user's public profile)
        """
        try:
            status = ConnectionStatus(status) if status else None
        except ValueError:
            raise InvalidOperationError(f"Unknown connection status '{status}'")

        async with self.db.transaction() as uow:
            connections = await uow.connections.list_for_user(user_id, status)
            others = await uow.users.find_by_ids(
                [c.other_party(user_id) for c in connections]
            )

        results = []
        for connection in connections:
            other = others.get(connection.other_party(user_id))
            results.append((connection, other.public_profile() if other else None))
        return results
