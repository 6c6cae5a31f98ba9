"""Polling loop that feeds Lemmy events into the moderation processor.

One polling round reads four feeds, in a fixed order:
1) new posts, 2) new comments (cursor per feed, stored in poll_state)
3) unread mentions, 4) unread private messages (marked read once handled)

Events within one feed batch are dispatched concurrently; a failure in one
handler is logged and never stops the others.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from adapters.lemmy_client import LemmyClient
from adapters.lemmy_mapper import (
    build_comment_context,
    build_mention_context,
    build_post_context,
    build_private_message_context,
)
from adapters.sqlite_storage import SQLiteStorage
from core.config import PollConfig
from core.errors import CapabilityError, StorageError
from core.identity import BotIdentity
from core.processor import ModerationProcessor

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def _view_id(view: dict, key: str) -> Optional[int]:
    item = view.get(key)
    return item.get("id") if isinstance(item, dict) else None


async def _dispatch(
    handler: Callable[[T], Awaitable[None]],
    build: Callable[[dict], T],
    view: dict,
    label: str,
) -> None:
    # Mapping happens inside the guard so a malformed view only costs that event.
    try:
        await handler(build(view))
    except Exception:
        LOGGER.exception("Error while processing %s", label)


class EventPoller:
    """Reads Lemmy feeds and hands each new event to the processor."""

    def __init__(
        self,
        client: LemmyClient,
        storage: SQLiteStorage,
        processor: ModerationProcessor,
        identity: BotIdentity,
        config: PollConfig,
    ) -> None:
        self._client = client
        self._storage = storage
        self._processor = processor
        self._identity = identity
        self._config = config

    def _community_scopes(self) -> Iterable[Optional[str]]:
        if self._config.communities is None:
            return [None]
        return sorted(self._config.communities)

    def _new_items(self, feed: str, views: list[dict], key: str) -> list[dict]:
        """Return unseen views in ascending id order.

        On the very first round the cursor is only initialized, so a fresh
        install does not moderate the whole backlog.
        """

        usable = [view for view in views if _view_id(view, key) is not None]
        if len(usable) < len(views):
            LOGGER.warning("Skipped %s %s view(s) without an id", len(views) - len(usable), feed)
        if not usable:
            return []
        last_id = self._storage.get_last_id(feed)
        if last_id is None:
            newest = max(_view_id(view, key) for view in usable)
            self._storage.set_last_id(feed, newest)
            LOGGER.info("Initialized %s cursor at %s", feed, newest)
            return []
        fresh = [view for view in usable if _view_id(view, key) > last_id]
        return sorted(fresh, key=lambda view: _view_id(view, key))

    def _advance(self, feed: str, handled: list[dict], key: str) -> None:
        # Advance only after handling so a crash mid-batch replays the batch.
        if handled:
            self._storage.set_last_id(feed, _view_id(handled[-1], key))

    async def poll_posts(self) -> None:
        for community in self._community_scopes():
            feed = f"posts:{community}" if community else "posts"
            views = await self._client.list_posts(self._config.page_limit, community)
            fresh = self._new_items(feed, views, "post")
            await asyncio.gather(
                *(
                    _dispatch(
                        self._processor.handle_post,
                        build_post_context,
                        view,
                        f"post {_view_id(view, 'post')}",
                    )
                    for view in fresh
                )
            )
            self._advance(feed, fresh, "post")

    async def poll_comments(self) -> None:
        for community in self._community_scopes():
            feed = f"comments:{community}" if community else "comments"
            views = await self._client.list_comments(self._config.page_limit, community)
            fresh = self._new_items(feed, views, "comment")
            await asyncio.gather(
                *(
                    _dispatch(
                        self._processor.handle_comment,
                        build_comment_context,
                        view,
                        f"comment {_view_id(view, 'comment')}",
                    )
                    for view in fresh
                )
            )
            self._advance(feed, fresh, "comment")

    async def poll_mentions(self) -> None:
        views = await self._client.list_mentions(self._config.page_limit)
        await asyncio.gather(*(self._handle_mention(view) for view in views))

    async def _handle_mention(self, view: dict) -> None:
        mention_id = _view_id(view, "person_mention")
        await _dispatch(self._processor.handle_mention, build_mention_context, view, f"mention {mention_id}")
        if mention_id is None:
            return
        try:
            await self._client.mark_mention_read(mention_id)
        except CapabilityError:
            LOGGER.exception("Failed to mark mention %s as read", mention_id)

    async def poll_private_messages(self) -> None:
        views = await self._client.list_private_messages(self._config.page_limit)
        await asyncio.gather(*(self._handle_private_message(view) for view in views))

    async def _handle_private_message(self, view: dict) -> None:
        message_id = _view_id(view, "private_message")
        # The bot's own replies are not submissions, but still get marked read
        # so they drop out of the unread feed.
        if not self._identity.is_self(_view_id(view, "creator")):
            await _dispatch(
                self._processor.handle_private_message,
                build_private_message_context,
                view,
                f"private message {message_id}",
            )
        if message_id is None:
            return
        try:
            await self._client.mark_private_message_read(message_id)
        except CapabilityError:
            LOGGER.exception("Failed to mark private message %s as read", message_id)

    async def poll_once(self) -> None:
        """Run one polling round over every feed."""

        for feed in (self.poll_posts, self.poll_comments, self.poll_mentions, self.poll_private_messages):
            try:
                await feed()
            except (CapabilityError, StorageError):
                LOGGER.exception("Polling %s failed", feed.__name__)

    async def run_forever(self) -> None:
        LOGGER.info("Polling every %ss", self._config.interval_seconds)
        while True:
            await self.poll_once()
            await asyncio.sleep(self._config.interval_seconds)
