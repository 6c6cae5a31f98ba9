"""Rule matching and action decisions (core domain).

Everything here is a pure function of the resolved rules and the event
content. The first matching rule wins; later rules are never evaluated.
"""

from __future__ import annotations

from functools import lru_cache
import logging
import re
from typing import Iterable, Optional, Tuple

from core.models import (
    Action,
    ActionType,
    CommentContext,
    CommentRule,
    MatchKind,
    MentionAction,
    MentionContext,
    MentionRule,
    PostContext,
    PostRule,
)

LOGGER = logging.getLogger(__name__)


@lru_cache(maxsize=512)
def _compile(pattern: str) -> Optional[re.Pattern]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        LOGGER.warning("Skipping invalid stored regex %r: %s", pattern, exc)
        return None


def rule_matches(match_kind: MatchKind, pattern: str, text: str) -> bool:
    """Apply one match test: substring containment or regex search."""

    if match_kind == MatchKind.EXACT:
        return pattern in text
    compiled = _compile(pattern)
    if compiled is None:
        return False
    return compiled.search(text) is not None


def select_field(post: PostContext, field: str) -> Optional[str]:
    """Return the post value a rule field refers to, or None when absent."""

    if field == "title":
        value = post.title
    elif field == "body":
        value = post.body
    elif field == "link":
        value = post.url
    else:
        raise ValueError(f"Unsupported post field: {field}")
    return value or None


def match_post(rules: Iterable[PostRule], post: PostContext) -> Optional[PostRule]:
    for rule in rules:
        # Rules stored by the SQLite adapter are single-field; in-memory rules
        # may still carry a combined field.
        for field in rule.fields():
            value = select_field(post, field)
            if value is None:
                continue
            if rule_matches(rule.match_kind, rule.match, value):
                return rule
    return None


def match_comment(rules: Iterable[CommentRule], comment: CommentContext) -> Optional[CommentRule]:
    for rule in rules:
        if rule_matches(rule.match_kind, rule.match, comment.body):
            return rule
    return None


def match_mention(rules: Iterable[MentionRule], mention: MentionContext) -> Optional[MentionRule]:
    for rule in rules:
        if rule.command in mention.text:
            return rule
    return None


def decide_post(rule: PostRule, post: PostContext) -> Tuple[Action, ...]:
    """Remove the post, then explain the removal if the rule has a message."""

    actions = [Action(ActionType.REMOVE_POST, post.post_id, text=rule.removal_reason)]
    if rule.message is not None:
        actions.append(Action(ActionType.COMMENT, post.post_id, text=rule.message))
    return tuple(actions)


def decide_comment(rule: CommentRule, comment: CommentContext) -> Tuple[Action, ...]:
    actions = [Action(ActionType.REMOVE_COMMENT, comment.comment_id, text=rule.removal_reason)]
    if rule.message is not None:
        actions.append(
            Action(ActionType.COMMENT, comment.post_id, text=rule.message, parent_id=comment.comment_id)
        )
    return tuple(actions)


def decide_mention(rule: MentionRule, mention: MentionContext) -> Tuple[Action, ...]:
    """Reply first, then lock or pin the post the mention was made in."""

    actions = []
    if rule.message is not None:
        actions.append(
            Action(ActionType.COMMENT, mention.post_id, text=rule.message, parent_id=mention.comment_id)
        )
    if rule.action == MentionAction.LOCK:
        actions.append(Action(ActionType.LOCK_POST, mention.post_id))
    else:
        actions.append(Action(ActionType.FEATURE_POST, mention.post_id))
    return tuple(actions)
