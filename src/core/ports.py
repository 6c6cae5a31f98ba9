"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage and platform adapters so
that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from core.models import CommentRule, CommunityRef, ExceptionRule, MentionRule, PostRule


class RuleStorePort(Protocol):
    """Storage operations required by the core pipeline."""

    def get_community(self, name: str, platform_id: int) -> Optional[int]:
        ...

    def add_community(self, name: str, platform_id: int) -> int:
        ...

    def add_post_rule(self, rule: PostRule, community_id: int) -> None:
        ...

    def add_comment_rule(self, rule: CommentRule, community_id: int) -> None:
        ...

    def add_mention_rule(self, rule: MentionRule, community_id: int) -> None:
        ...

    def add_exception_rule(self, rule: ExceptionRule, community_id: int) -> None:
        ...

    def get_post_rules(self, actor_id: str, community_id: int, is_moderator: bool) -> List[PostRule]:
        ...

    def get_comment_rules(self, actor_id: str, community_id: int, is_moderator: bool) -> List[CommentRule]:
        ...

    def get_mention_rules(self, community_id: int) -> List[MentionRule]:
        ...

    def is_whitelisted(self, actor_id: str, community_id: int) -> bool:
        ...


class PlatformPort(Protocol):
    """Lemmy capabilities the core needs. Implementations raise CapabilityError."""

    async def resolve_community(self, name: str) -> Optional[CommunityRef]:
        ...

    async def resolve_community_id(self, name: str) -> Optional[int]:
        ...

    async def is_community_moderator(self, person_id: int, community_id: int) -> bool:
        ...

    async def resolve_user_id(self, name: str) -> int:
        ...

    async def send_private_message(self, recipient_id: int, text: str) -> None:
        ...

    async def create_comment(self, post_id: int, text: str, parent_id: Optional[int] = None) -> None:
        ...

    async def remove_comment(self, comment_id: int, reason: Optional[str] = None) -> None:
        ...

    async def remove_post(self, post_id: int, reason: Optional[str] = None) -> None:
        ...

    async def lock_post(self, post_id: int, locked: bool) -> None:
        ...

    async def feature_post(self, post_id: int, featured: bool) -> None:
        ...
