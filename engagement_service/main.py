"""
FastAPI application for Engagement Service
"""
from datetime import datetime
from typing import Optional
from fastapi import FastAPI, Depends, HTTPException, Response, status, Query
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from .config import settings
from .infrastructure.database.connection import db, get_db
from .cache import cache
from .kafka_producer import kafka_producer
from .error_handlers import register_error_handlers
from .dependencies import (
    RequestContext,
    get_request_context,
    get_connection_manager,
    get_engagement_counters,
    get_notification_dispatcher,
    get_trending_ranker,
    get_suggestion_engine,
    get_activity_feed,
    get_analytics_recorder,
    get_metrics_service,
)
from .application.activity_feed import ActivityFeedAggregator
from .application.analytics import AnalyticsRecorder
from .application.connections import ConnectionManager
from .application.engagement import EngagementCounters
from .application.metrics import BusinessMetricsService
from .application.notifications import NotificationDispatcher
from .application.suggestions import SuggestionEngine
from .application.trending import TrendingTopicsRanker
from .domain.models import Comment, FeedItem, FeedItemKind, NotificationWithActor, PublicProfile
from .schemas import (
    ActivityFeedResponse,
    AnalyticsEventCreate,
    AnalyticsEventResponse,
    AnalyticsSummaryResponse,
    BusinessMetricResponse,
    BusinessMetricUpdate,
    CommentActivity,
    CommentCreate,
    CommentFeedItem,
    CommentResponse,
    CommentsResponse,
    ConnectionActivity,
    ConnectionCreate,
    ConnectionFeedItem,
    ConnectionResponse,
    ConnectionStatusUpdate,
    LikeResponse,
    LikeStatusResponse,
    MarkAllReadResponse,
    MessageResponse,
    NotificationResponse,
    NotificationsResponse,
    PostActivity,
    PostFeedItem,
    PublicProfileResponse,
    SuggestionsResponse,
    TrendingTopicResponse,
    TrendingTopicUpsert,
    TrendingTopicsResponse,
    UnreadCountResponse,
    UserConnectionResponse,
    UserConnectionsResponse,
    UserSummary,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting Engagement Service...")

    # Connect to database
    await db.connect()
    if settings.DB_CREATE_SCHEMA:
        await db.create_schema()
    logger.info("Database connected")

    # Connect to Redis
    await cache.connect()
    logger.info("Redis cache initialized")

    # Start Kafka producer
    await kafka_producer.start()
    logger.info("Kafka producer started")

    logger.info(f"Engagement Service started successfully on port {settings.PORT}")

    yield

    # Shutdown
    logger.info("Shutting down Engagement Service...")

    await kafka_producer.stop()
    await cache.disconnect()
    await db.disconnect()

    logger.info("Engagement Service shut down successfully")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="ShareSmallBiz Engagement Service - connections, likes, comments, notifications and discovery",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


def _profile(profile: Optional[PublicProfile]) -> Optional[PublicProfileResponse]:
    return PublicProfileResponse.model_validate(profile) if profile else None


def _comment_response(comment: Comment, author: Optional[PublicProfile]) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        content=comment.content,
        created_at=comment.created_at,
        author=_profile(author),
    )


def _notification_response(item: NotificationWithActor) -> NotificationResponse:
    n = item.notification
    return NotificationResponse(
        id=n.id,
        user_id=n.user_id,
        actor_id=n.actor_id,
        type=n.type,
        message=n.message,
        target_id=n.target_id,
        target_type=n.target_type,
        read=n.read,
        created_at=n.created_at,
        actor=_profile(item.actor),
    )


_FEED_ITEM_MODELS = {
    FeedItemKind.POST: (PostFeedItem, PostActivity),
    FeedItemKind.COMMENT: (CommentFeedItem, CommentActivity),
    FeedItemKind.CONNECTION: (ConnectionFeedItem, ConnectionActivity),
}


def _feed_item_response(item: FeedItem):
    item_model, data_model = _FEED_ITEM_MODELS[item.kind]
    return item_model(
        id=item.id,
        occurred_at=item.occurred_at,
        data=data_model.model_validate(item.data),
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(database=Depends(get_db)):
    """Health check endpoint"""
    database_ok = await database.health_check()
    return {
        "status": "healthy" if database_ok else "degraded",
        "service": settings.APP_NAME,
        "database": "connected" if database_ok else "unavailable",
    }


# Connection endpoints
@app.post(
    "/api/v1/connections",
    response_model=ConnectionResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Connections"],
    summary="Send a connection request",
)
async def create_connection(
    request: ConnectionCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: ConnectionManager = Depends(get_connection_manager),
):
    """
    Send a connection request from the current user

    - 409 if the two users are already related, in either direction
    - 400 when connecting to yourself
    """
    connection = await service.create_connection(ctx.user_id, request.receiver_id)
    return ConnectionResponse.model_validate(connection)


@app.get(
    "/api/v1/connections/{connection_id}",
    response_model=ConnectionResponse,
    tags=["Connections"],
    summary="Get a connection",
)
async def get_connection(
    connection_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ConnectionManager = Depends(get_connection_manager),
):
    connection = await service.get_connection(connection_id)
    return ConnectionResponse.model_validate(connection)


@app.put(
    "/api/v1/connections/{connection_id}",
    response_model=ConnectionResponse,
    tags=["Connections"],
    summary="Accept, reject or block a connection request",
)
async def update_connection_status(
    connection_id: str,
    request: ConnectionStatusUpdate,
    ctx: RequestContext = Depends(get_request_context),
    service: ConnectionManager = Depends(get_connection_manager),
):
    """
    Answer a pending connection request

    - status: 'accepted', 'rejected' or 'blocked'
    - 400 if the request was already answered
    """
    connection = await service.update_status(connection_id, request.status)
    return ConnectionResponse.model_validate(connection)


@app.delete(
    "/api/v1/connections/{connection_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Connections"],
    summary="Remove a connection",
)
async def delete_connection(
    connection_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ConnectionManager = Depends(get_connection_manager),
):
    if not await service.delete_connection(connection_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Connection not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get(
    "/api/v1/users/{user_id}/connections",
    response_model=UserConnectionsResponse,
    tags=["Connections"],
    summary="Get a user's connections",
)
async def get_user_connections(
    user_id: str,
    connection_status: Optional[str] = Query(
        "accepted", alias="status", description="Connection status filter"
    ),
    ctx: RequestContext = Depends(get_request_context),
    service: ConnectionManager = Depends(get_connection_manager),
):
    """
    Get a user's connections, each with the other participant's profile
    """
    results = await service.list_user_connections(user_id, connection_status)

    connections = [
        UserConnectionResponse(
            connection=ConnectionResponse.model_validate(connection),
            user=_profile(other),
        )
        for connection, other in results
    ]
    return UserConnectionsResponse(connections=connections, count=len(connections))


# Comment endpoints
@app.post(
    "/api/v1/posts/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Comments"],
    summary="Comment on a post",
)
async def add_comment(
    post_id: str,
    request: CommentCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: EngagementCounters = Depends(get_engagement_counters),
):
    comment = await service.add_comment(post_id, ctx.user_id, request.content)
    return _comment_response(comment, None)


@app.get(
    "/api/v1/posts/{post_id}/comments",
    response_model=CommentsResponse,
    tags=["Comments"],
    summary="Get comments on a post",
)
async def list_comments(
    post_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: EngagementCounters = Depends(get_engagement_counters),
):
    """
    Get a post's comments, oldest first, with author profiles
    """
    comments = [
        _comment_response(comment, author)
        for comment, author in await service.list_comments(post_id)
    ]
    return CommentsResponse(comments=comments, count=len(comments))


@app.delete(
    "/api/v1/posts/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Comments"],
    summary="Delete a comment",
)
async def delete_comment(
    comment_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: EngagementCounters = Depends(get_engagement_counters),
):
    if not await service.delete_comment(comment_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Comment not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Like endpoints
@app.post(
    "/api/v1/posts/{post_id}/like",
    response_model=LikeResponse,
    tags=["Likes"],
    summary="Like a post",
)
async def like_post(
    post_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: EngagementCounters = Depends(get_engagement_counters),
):
    """
    Like a post

    - success is False when the post was already liked
    """
    success = await service.like(post_id, ctx.user_id)
    post = await service.get_post(post_id)
    return LikeResponse(
        post_id=post_id, success=success, liked=True, likes_count=post.likes_count
    )


@app.delete(
    "/api/v1/posts/{post_id}/like",
    response_model=LikeResponse,
    tags=["Likes"],
    summary="Unlike a post",
)
async def unlike_post(
    post_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: EngagementCounters = Depends(get_engagement_counters),
):
    """
    Remove a like

    - success is False when the post was not liked
    """
    post = await service.get_post(post_id)
    success = await service.unlike(post_id, ctx.user_id)
    if success:
        post = await service.get_post(post_id)
    return LikeResponse(
        post_id=post_id, success=success, liked=False, likes_count=post.likes_count
    )


@app.get(
    "/api/v1/posts/{post_id}/like",
    response_model=LikeStatusResponse,
    tags=["Likes"],
    summary="Check if the current user likes a post",
)
async def is_liked(
    post_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: EngagementCounters = Depends(get_engagement_counters),
):
    liked = await service.is_liked(post_id, ctx.user_id)
    return LikeStatusResponse(post_id=post_id, liked=liked)


# Notification endpoints
@app.get(
    "/api/v1/notifications",
    response_model=NotificationsResponse,
    tags=["Notifications"],
    summary="Get current user's notifications",
)
async def get_notifications(
    unread: Optional[bool] = Query(None, description="Only unread (true) or only read (false)"),
    limit: int = Query(
        settings.DEFAULT_NOTIFICATION_LIMIT, ge=1, le=settings.MAX_PAGE_SIZE,
        description="Maximum number of notifications",
    ),
    ctx: RequestContext = Depends(get_request_context),
    service: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Get notifications, newest first, with the actor's profile
    """
    read = None if unread is None else not unread
    items = await service.list_for_user(ctx.user_id, read=read, limit=limit)

    notifications = [_notification_response(item) for item in items]
    return NotificationsResponse(notifications=notifications, count=len(notifications))


@app.get(
    "/api/v1/notifications/unread-count",
    response_model=UnreadCountResponse,
    tags=["Notifications"],
    summary="Get unread notification count",
)
async def get_unread_count(
    ctx: RequestContext = Depends(get_request_context),
    service: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    return UnreadCountResponse(count=await service.unread_count(ctx.user_id))


@app.put(
    "/api/v1/notifications/read-all",
    response_model=MarkAllReadResponse,
    tags=["Notifications"],
    summary="Mark all notifications read",
)
async def mark_all_read(
    ctx: RequestContext = Depends(get_request_context),
    service: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    return MarkAllReadResponse(updated=await service.mark_all_read(ctx.user_id))


@app.put(
    "/api/v1/notifications/{notification_id}/read",
    response_model=MessageResponse,
    tags=["Notifications"],
    summary="Mark a notification read",
)
async def mark_read(
    notification_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    if not await service.mark_read(notification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )
    return MessageResponse(message="Notification marked as read")


# Discovery endpoints
@app.get(
    "/api/v1/users/{user_id}/suggestions",
    response_model=SuggestionsResponse,
    tags=["Suggestions"],
    summary="Get connection suggestions",
)
async def get_suggestions(
    user_id: str,
    limit: int = Query(
        settings.DEFAULT_SUGGESTION_LIMIT, ge=1, le=settings.MAX_PAGE_SIZE,
        description="Maximum number of suggestions",
    ),
    ctx: RequestContext = Depends(get_request_context),
    service: SuggestionEngine = Depends(get_suggestion_engine),
):
    """
    Get connection suggestions

    Returns users with no connection of any status to the user,
    ordered by business score
    """
    users = await service.suggest(user_id, limit)
    suggestions = [UserSummary.model_validate(user) for user in users]
    return SuggestionsResponse(suggestions=suggestions, count=len(suggestions))


@app.get(
    "/api/v1/trending",
    response_model=TrendingTopicsResponse,
    tags=["Trending"],
    summary="Get trending topics",
)
async def get_trending(
    limit: int = Query(
        settings.DEFAULT_TRENDING_LIMIT, ge=1, le=settings.MAX_PAGE_SIZE,
        description="Maximum number of topics",
    ),
    service: TrendingTopicsRanker = Depends(get_trending_ranker),
):
    topics = [TrendingTopicResponse.model_validate(t) for t in await service.list_trending(limit)]
    return TrendingTopicsResponse(topics=topics, count=len(topics))


@app.put(
    "/api/v1/trending/{tag}",
    response_model=TrendingTopicResponse,
    tags=["Trending"],
    summary="Insert or refresh a trending topic",
)
async def upsert_trending(
    tag: str,
    request: TrendingTopicUpsert,
    ctx: RequestContext = Depends(get_request_context),
    service: TrendingTopicsRanker = Depends(get_trending_ranker),
):
    topic = await service.upsert(tag, request.count, request.growth_rate)
    return TrendingTopicResponse.model_validate(topic)


@app.get(
    "/api/v1/users/{user_id}/activities",
    response_model=ActivityFeedResponse,
    tags=["Activity"],
    summary="Get a user's activity feed",
)
async def get_activity_feed(
    user_id: str,
    limit: int = Query(
        settings.DEFAULT_FEED_LIMIT, ge=1, le=settings.MAX_PAGE_SIZE,
        description="Maximum number of items",
    ),
    ctx: RequestContext = Depends(get_request_context),
    service: ActivityFeedAggregator = Depends(get_activity_feed),
):
    """
    Get a user's posts, comments and accepted connections, newest first
    """
    items = [_feed_item_response(item) for item in await service.activity_feed(user_id, limit)]
    return ActivityFeedResponse(user_id=user_id, items=items, count=len(items))


# Business metrics endpoints
@app.get(
    "/api/v1/users/{user_id}/metrics",
    response_model=BusinessMetricResponse,
    tags=["Metrics"],
    summary="Get a user's business metrics",
)
async def get_metrics(
    user_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: BusinessMetricsService = Depends(get_metrics_service),
):
    return BusinessMetricResponse.model_validate(await service.get_or_create(user_id))


@app.put(
    "/api/v1/users/{user_id}/metrics",
    response_model=BusinessMetricResponse,
    tags=["Metrics"],
    summary="Update a user's business metrics",
)
async def update_metrics(
    user_id: str,
    request: BusinessMetricUpdate,
    ctx: RequestContext = Depends(get_request_context),
    service: BusinessMetricsService = Depends(get_metrics_service),
):
    metric = await service.update(
        user_id,
        request.profile_views,
        request.network_growth,
        request.opportunities,
        request.engagement_score,
    )
    return BusinessMetricResponse.model_validate(metric)


# Analytics endpoints
@app.post(
    "/api/v1/analytics/events",
    response_model=AnalyticsEventResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Analytics"],
    summary="Record an analytics event for the current user",
)
async def record_event(
    request: AnalyticsEventCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: AnalyticsRecorder = Depends(get_analytics_recorder),
):
    """
    Record an analytics event

    - event_type: profile_view, post_view, post_engagement, connection_made,
      opportunity_created or search_performed
    - 400 when the payload does not match the event type
    """
    event = await service.record(ctx.user_id, request.event_type, request.payload)
    return AnalyticsEventResponse.model_validate(event)


@app.get(
    "/api/v1/analytics/users/{user_id}",
    response_model=AnalyticsSummaryResponse,
    tags=["Analytics"],
    summary="Get a user's analytics summary",
)
async def get_analytics_summary(
    user_id: str,
    start: Optional[datetime] = Query(None, description="Range start (inclusive)"),
    end: Optional[datetime] = Query(None, description="Range end (inclusive)"),
    ctx: RequestContext = Depends(get_request_context),
    service: AnalyticsRecorder = Depends(get_analytics_recorder),
):
    summary = await service.user_summary(user_id, start, end)
    return AnalyticsSummaryResponse.model_validate(summary)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "engagement_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
