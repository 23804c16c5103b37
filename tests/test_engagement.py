"""EngagementCounters: likes/comments stay in step with their post counters."""

import asyncio

import pytest

from engagement_service.domain.exceptions import InvalidOperationError, NotFoundError
from engagement_service.domain.models import NotificationType


async def test_like_increments_counter_once(engagement, gateway, alice_post, bob):
    assert await engagement.like(alice_post.id, bob.id) is True
    assert await engagement.like(alice_post.id, bob.id) is False

    assert gateway.post(alice_post.id).likes_count == 1
    assert await engagement.is_liked(alice_post.id, bob.id)


async def test_concurrent_likes_by_same_user_count_once(engagement, gateway, alice_post, bob):
    results = await asyncio.gather(*(engagement.like(alice_post.id, bob.id) for _ in range(5)))

    assert results.count(True) == 1
    assert gateway.post(alice_post.id).likes_count == 1


async def test_likes_count_matches_like_rows(engagement, gateway, alice_post, alice, bob, carol):
    for user in (alice, bob, carol):
        await engagement.like(alice_post.id, user.id)
    await engagement.unlike(alice_post.id, bob.id)
    await engagement.unlike(alice_post.id, bob.id)

    assert gateway.post(alice_post.id).likes_count == gateway.like_rows(alice_post.id) == 2


async def test_unlike_without_like_returns_false(engagement, gateway, alice_post, bob):
    assert await engagement.unlike(alice_post.id, bob.id) is False
    assert gateway.post(alice_post.id).likes_count == 0


async def test_like_unknown_post(engagement, bob):
    with pytest.raises(NotFoundError):
        await engagement.like("missing", bob.id)


async def test_like_notifies_owner_but_not_self(engagement, notifier, alice_post, alice, bob):
    await engagement.like(alice_post.id, alice.id)
    assert await notifier.unread_count(alice.id) == 0

    await engagement.like(alice_post.id, bob.id)

    items = await notifier.list_for_user(alice.id)
    assert len(items) == 1
    assert items[0].notification.type == NotificationType.LIKE
    assert items[0].notification.target_id == alice_post.id
    assert items[0].actor.id == bob.id


async def test_add_comment_increments_counter_and_notifies(
    engagement, notifier, gateway, alice_post, alice, bob
):
    comment = await engagement.add_comment(alice_post.id, bob.id, "  Try Main Street Bakes  ")

    assert comment.content == "Try Main Street Bakes"
    assert gateway.post(alice_post.id).comments_count == 1

    items = await notifier.list_for_user(alice.id)
    assert items[0].notification.type == NotificationType.COMMENT
    assert items[0].notification.message == "commented on your post"


async def test_self_comment_does_not_notify(engagement, gateway, alice_post, alice):
    await engagement.add_comment(alice_post.id, alice.id, "Bump")

    assert not gateway.state.notifications


async def test_add_comment_unknown_post(engagement, gateway, bob):
    with pytest.raises(NotFoundError):
        await engagement.add_comment("missing", bob.id, "Hello")
    assert not gateway.state.comments


@pytest.mark.parametrize("content", ["", "   ", "x" * 2001])
async def test_add_comment_rejects_bad_content(engagement, alice_post, bob, content):
    with pytest.raises(InvalidOperationError):
        await engagement.add_comment(alice_post.id, bob.id, content)


async def test_delete_comment_decrements_counter(engagement, gateway, alice_post, bob):
    comment = await engagement.add_comment(alice_post.id, bob.id, "First")
    await engagement.add_comment(alice_post.id, bob.id, "Second")

    assert await engagement.delete_comment(comment.id) is True
    assert await engagement.delete_comment(comment.id) is False

    assert gateway.post(alice_post.id).comments_count == gateway.comment_rows(alice_post.id) == 1


async def test_list_comments_oldest_first_with_authors(engagement, alice_post, alice, bob):
    await engagement.add_comment(alice_post.id, bob.id, "First")
    await engagement.add_comment(alice_post.id, alice.id, "Second")

    comments = await engagement.list_comments(alice_post.id)

    assert [c.content for c, _ in comments] == ["First", "Second"]
    assert [a.username for _, a in comments] == ["bob", "alice"]


async def test_failure_mid_transaction_leaves_rows_and_counters(
    engagement, notifier, gateway, alice_post, alice, bob, monkeypatch
):
    async def broken_notify(*args, **kwargs):
        raise RuntimeError("notification insert failed")

    monkeypatch.setattr(notifier, "notify", broken_notify)

    with pytest.raises(RuntimeError):
        await engagement.like(alice_post.id, bob.id)
    with pytest.raises(RuntimeError):
        await engagement.add_comment(alice_post.id, bob.id, "Hello")

    post = gateway.post(alice_post.id)
    assert (post.likes_count, post.comments_count) == (0, 0)
    assert not gateway.state.likes
    assert not gateway.state.comments
    assert not await engagement.is_liked(alice_post.id, bob.id)
