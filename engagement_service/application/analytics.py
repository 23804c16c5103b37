"""
Analytics recorder - append-only event log and per-user summaries
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from ..domain.analytics import parse_payload, payload_to_dict
from ..domain.exceptions import InvalidOperationError
from ..domain.models import AnalyticsEvent
from ..domain.repositories import IPersistenceGateway

logger = logging.getLogger(__name__)


@dataclass
class EventTypeSummary:
    """Events of one type within a summary"""
    event_type: str
    count: int = 0
    events: List[AnalyticsEvent] = field(default_factory=list)


@dataclass
class AnalyticsSummary:
    """A user's events in a date range, grouped by type"""
    user_id: str
    start: Optional[datetime]
    end: Optional[datetime]
    total_events: int
    by_type: List[EventTypeSummary]


class AnalyticsRecorder:
    """Writes and summarizes analytics events"""

    def __init__(self, db: IPersistenceGateway):
        self.db = db

    async def record(
        self, user_id: str, event_type: str, data: Optional[Dict[str, Any]] = None
    ) -> AnalyticsEvent:
        """
        Append an event after validating its payload

        Raises:
            InvalidOperationError: Unknown event type or malformed payload
        """
        payload = parse_payload(event_type, data)

        async with self.db.transaction() as uow:
            event = await uow.analytics.insert(user_id, event_type, payload_to_dict(payload))

        logger.debug(f"Recorded {event_type} for {user_id}")
        return event

    async def user_summary(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> AnalyticsSummary:
        """Group a user's events in [start, end] by event type"""
        if start and end and start > end:
            raise InvalidOperationError("Start date must be before end date")

        async with self.db.transaction() as uow:
            events = await uow.analytics.list_for_user(user_id, start, end)

        groups: Dict[str, EventTypeSummary] = {}
        for event in events:
            group = groups.setdefault(event.event_type, EventTypeSummary(event.event_type))
            group.count += 1
            group.events.append(event)

        return AnalyticsSummary(
            user_id=user_id,
            start=start,
            end=end,
            total_events=len(events),
            by_type=list(groups.values()),
        )
