"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any Lemmy-specific types. Rules form a tagged variant: each
record carries a ``kind`` and callers dispatch on it.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class RuleKind(str, Enum):
    POST = "post"
    COMMENT = "comment"
    MENTION = "mention"
    EXCEPTION = "exception"


class MatchKind(str, Enum):
    EXACT = "exact"
    REGEX = "regex"


class MentionAction(str, Enum):
    PIN = "pin"
    LOCK = "lock"


POST_FIELDS = ("title", "body", "link")


@dataclass(frozen=True)
class PostRule:
    """Match against one or more post fields.

    ``field`` may be a "+"-joined combination such as ``title+body``; the
    store expands it into one row per field, see :meth:`fields`.
    """

    community: str
    field: str
    match: str
    match_kind: MatchKind
    whitelist_exempt: bool = False
    mod_exempt: bool = True
    message: Optional[str] = None
    removal_reason: Optional[str] = None
    kind: RuleKind = dataclasses.field(default=RuleKind.POST, init=False)

    def fields(self) -> tuple[str, ...]:
        return tuple(self.field.split("+"))


@dataclass(frozen=True)
class CommentRule:
    community: str
    match: str
    match_kind: MatchKind
    whitelist_exempt: bool = False
    mod_exempt: bool = True
    message: Optional[str] = None
    removal_reason: Optional[str] = None
    kind: RuleKind = dataclasses.field(default=RuleKind.COMMENT, init=False)


@dataclass(frozen=True)
class MentionRule:
    community: str
    command: str
    action: MentionAction
    message: Optional[str] = None
    kind: RuleKind = dataclasses.field(default=RuleKind.MENTION, init=False)


@dataclass(frozen=True)
class ExceptionRule:
    """Whitelist entry: the user skips rules flagged ``whitelist_exempt``."""

    community: str
    user_actor_id: str
    kind: RuleKind = dataclasses.field(default=RuleKind.EXCEPTION, init=False)


Rule = Union[PostRule, CommentRule, MentionRule, ExceptionRule]


@dataclass(frozen=True)
class CommunityRef:
    """A community as the platform names it, which may differ from what a moderator typed."""

    id: int
    name: str


@dataclass(frozen=True)
class PostContext:
    """Minimal post context used by the core processing pipeline."""

    post_id: int
    community_name: str
    community_id: int
    creator_id: int
    creator_actor_id: str
    title: str
    body: Optional[str]
    url: Optional[str]


@dataclass(frozen=True)
class CommentContext:
    comment_id: int
    post_id: int
    community_name: str
    community_id: int
    creator_id: int
    creator_actor_id: str
    body: str


@dataclass(frozen=True)
class MentionContext:
    """A comment that mentions the bot account."""

    comment_id: int
    post_id: int
    community_name: str
    community_id: int
    creator_id: int
    creator_actor_id: str
    text: str


@dataclass(frozen=True)
class PrivateMessageContext:
    message_id: int
    creator_id: int
    content: str


class ActionType(str, Enum):
    REMOVE_POST = "remove_post"
    REMOVE_COMMENT = "remove_comment"
    COMMENT = "comment"
    LOCK_POST = "lock_post"
    FEATURE_POST = "feature_post"


@dataclass(frozen=True)
class Action:
    """A single platform mutation requested by the evaluator."""

    type: ActionType
    target_id: int
    text: Optional[str] = None
    parent_id: Optional[int] = None
