"""Core event processing pipeline.

This module is integration-agnostic. It only relies on ports for storage and
platform calls, so the polling loop (or any other event source) just builds
contexts and hands them over.
"""

from __future__ import annotations

import logging
from typing import Iterable

from core.errors import CapabilityError
from core.evaluator import (
    decide_comment,
    decide_mention,
    decide_post,
    match_comment,
    match_mention,
    match_post,
)
from core.identity import BotIdentity
from core.models import (
    Action,
    ActionType,
    CommentContext,
    MentionContext,
    PostContext,
    PrivateMessageContext,
)
from core.ports import PlatformPort, RuleStorePort
from core.reporting import format_report
from core.resolver import RuleResolver
from core.submission import SubmissionWorkflow

LOGGER = logging.getLogger(__name__)


class ModerationProcessor:
    """Orchestrates rule resolution, matching, and platform actions."""

    def __init__(self, storage: RuleStorePort, platform: PlatformPort, identity: BotIdentity) -> None:
        self._platform = platform
        self._identity = identity
        self._resolver = RuleResolver(storage, platform)
        self._submissions = SubmissionWorkflow(storage, platform, identity)

    async def handle_post(self, context: PostContext) -> None:
        """Process one new post through the post rules of its community."""

        if self._identity.is_self(context.creator_id):
            return

        rules = await self._resolver.post_rules(context)
        rule = match_post(rules, context)
        if rule is None:
            return

        LOGGER.info(
            "Post %s in %s matched %s rule %r",
            context.post_id,
            context.community_name,
            rule.field,
            rule.match,
        )
        await self._execute(decide_post(rule, context), f"post {context.post_id}")

    async def handle_comment(self, context: CommentContext) -> None:
        if self._identity.is_self(context.creator_id):
            return

        rules = await self._resolver.comment_rules(context)
        rule = match_comment(rules, context)
        if rule is None:
            return

        LOGGER.info("Comment %s in %s matched rule %r", context.comment_id, context.community_name, rule.match)
        await self._execute(decide_comment(rule, context), f"comment {context.comment_id}")

    async def handle_mention(self, context: MentionContext) -> None:
        """Run mention commands; only moderators may drive the bot this way."""

        if self._identity.is_self(context.creator_id):
            return
        if not await self._platform.is_community_moderator(context.creator_id, context.community_id):
            return

        rule = match_mention(self._resolver.mention_rules(context), context)
        if rule is None:
            return

        LOGGER.info(
            "Mention %s in %s triggered %s (%r)",
            context.comment_id,
            context.community_name,
            rule.action.value,
            rule.command,
        )
        await self._execute(decide_mention(rule, context), f"mention {context.comment_id}")

    async def handle_private_message(self, context: PrivateMessageContext) -> None:
        """Treat a private message as a rule submission and reply with a report."""

        if self._identity.is_self(context.creator_id):
            return

        report = await self._submissions.submit(context.creator_id, context.content)
        await self._platform.send_private_message(context.creator_id, format_report(report))

    async def _execute(self, actions: Iterable[Action], label: str) -> None:
        # Actions run in order; a failed call stops the remaining ones but
        # anything already applied (e.g. the removal) stays applied.
        for action in actions:
            try:
                await self._apply(action)
            except CapabilityError:
                LOGGER.exception("Failed to apply %s to %s", action.type.value, label)
                return

    async def _apply(self, action: Action) -> None:
        if action.type == ActionType.REMOVE_POST:
            await self._platform.remove_post(action.target_id, action.text)
        elif action.type == ActionType.REMOVE_COMMENT:
            await self._platform.remove_comment(action.target_id, action.text)
        elif action.type == ActionType.COMMENT:
            await self._platform.create_comment(action.target_id, action.text, action.parent_id)
        elif action.type == ActionType.LOCK_POST:
            await self._platform.lock_post(action.target_id, True)
        elif action.type == ActionType.FEATURE_POST:
            await self._platform.feature_post(action.target_id, True)
        else:
            raise ValueError(f"Unsupported action: {action.type}")
