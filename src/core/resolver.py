"""Exemption resolution: which stored rules apply to a given author."""

from __future__ import annotations

import logging
from typing import Iterable, List, TypeVar, Union

from core.models import CommentContext, CommentRule, MentionContext, MentionRule, PostContext, PostRule
from core.ports import PlatformPort, RuleStorePort

LOGGER = logging.getLogger(__name__)

ExemptableRule = Union[PostRule, CommentRule]
R = TypeVar("R", PostRule, CommentRule)


def rule_applies(rule: ExemptableRule, is_moderator: bool, is_whitelisted: bool) -> bool:
    """Return True when the rule must be evaluated for this author.

    Whitelisting only skips rules flagged ``whitelist_exempt``; it is not a
    bypass of every rule in the community.
    """

    if rule.mod_exempt and is_moderator:
        return False
    if rule.whitelist_exempt and is_whitelisted:
        return False
    return True


def resolve_applicable(rules: Iterable[R], is_moderator: bool, is_whitelisted: bool) -> List[R]:
    """Filter rules down to the applicable ones, keeping store order."""

    return [rule for rule in rules if rule_applies(rule, is_moderator, is_whitelisted)]


class RuleResolver:
    """Compute the ordered rule list for an incoming event."""

    def __init__(self, storage: RuleStorePort, platform: PlatformPort) -> None:
        self._storage = storage
        self._platform = platform

    async def post_rules(self, context: PostContext) -> List[PostRule]:
        community_id = self._storage.get_community(context.community_name, context.community_id)
        if community_id is None:
            return []
        is_moderator = await self._platform.is_community_moderator(context.creator_id, context.community_id)
        return self._storage.get_post_rules(context.creator_actor_id, community_id, is_moderator)

    async def comment_rules(self, context: CommentContext) -> List[CommentRule]:
        community_id = self._storage.get_community(context.community_name, context.community_id)
        if community_id is None:
            return []
        is_moderator = await self._platform.is_community_moderator(context.creator_id, context.community_id)
        return self._storage.get_comment_rules(context.creator_actor_id, community_id, is_moderator)

    def mention_rules(self, context: MentionContext) -> List[MentionRule]:
        # Mentions are gated on moderator status by the caller, so there is
        # no exemption logic here.
        community_id = self._storage.get_community(context.community_name, context.community_id)
        if community_id is None:
            return []
        return self._storage.get_mention_rules(community_id)
