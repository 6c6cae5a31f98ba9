"""Lemmy-to-core event mapping adapter.

This keeps Lemmy view shapes out of the core pipeline.
"""

from __future__ import annotations

from core.models import CommentContext, MentionContext, PostContext, PrivateMessageContext


def build_post_context(view: dict) -> PostContext:
    """Build a PostContext from a Lemmy PostView."""

    post = view["post"]
    community = view["community"]
    creator = view["creator"]
    return PostContext(
        post_id=post["id"],
        community_name=community["name"],
        community_id=community["id"],
        creator_id=creator["id"],
        creator_actor_id=creator["actor_id"],
        title=post.get("name") or "",
        body=post.get("body"),
        url=post.get("url"),
    )


def build_comment_context(view: dict) -> CommentContext:
    comment = view["comment"]
    community = view["community"]
    creator = view["creator"]
    return CommentContext(
        comment_id=comment["id"],
        post_id=comment.get("post_id") or view["post"]["id"],
        community_name=community["name"],
        community_id=community["id"],
        creator_id=creator["id"],
        creator_actor_id=creator["actor_id"],
        body=comment.get("content") or "",
    )


def build_mention_context(view: dict) -> MentionContext:
    """Build a MentionContext from a Lemmy PersonMentionView."""

    comment = view["comment"]
    community = view["community"]
    creator = view["creator"]
    return MentionContext(
        comment_id=comment["id"],
        post_id=view["post"]["id"],
        community_name=community["name"],
        community_id=community["id"],
        creator_id=creator["id"],
        creator_actor_id=creator["actor_id"],
        text=comment.get("content") or "",
    )


def build_private_message_context(view: dict) -> PrivateMessageContext:
    message = view["private_message"]
    return PrivateMessageContext(
        message_id=message["id"],
        creator_id=view["creator"]["id"],
        content=message.get("content") or "",
    )
