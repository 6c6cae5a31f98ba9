from __future__ import annotations

import asyncio

from core.models import (
    CommentContext,
    CommentRule,
    ExceptionRule,
    MatchKind,
    MentionAction,
    MentionContext,
    MentionRule,
    PostContext,
    PostRule,
    PrivateMessageContext,
)
from core.processor import ModerationProcessor
from fakes import BOT_ID, MOD_ACTOR, MOD_ID, PCM_ID, USER_ACTOR, USER_ID

SPAM_RULE = CommentRule(
    community="pcm",
    match="spam",
    match_kind=MatchKind.EXACT,
    whitelist_exempt=True,
    mod_exempt=True,
    message=None,
    removal_reason="spam",
)


def _comment(creator_id: int, actor: str = USER_ACTOR, body: str = "buy spam now") -> CommentContext:
    return CommentContext(
        comment_id=100,
        post_id=50,
        community_name="pcm",
        community_id=PCM_ID,
        creator_id=creator_id,
        creator_actor_id=actor,
        body=body,
    )


def _post(creator_id: int = USER_ID, title: str = "free crypto") -> PostContext:
    return PostContext(
        post_id=50,
        community_name="pcm",
        community_id=PCM_ID,
        creator_id=creator_id,
        creator_actor_id=USER_ACTOR,
        title=title,
        body=None,
        url=None,
    )


def _mention(creator_id: int = MOD_ID, text: str = "@automod !lock") -> MentionContext:
    return MentionContext(
        comment_id=200,
        post_id=50,
        community_name="pcm",
        community_id=PCM_ID,
        creator_id=creator_id,
        creator_actor_id=MOD_ACTOR,
        text=text,
    )


def test_comment_from_regular_user_is_removed_without_reply(storage, platform, identity) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_comment_rule(SPAM_RULE, community_id)
    processor = ModerationProcessor(storage, platform, identity)

    asyncio.run(processor.handle_comment(_comment(USER_ID)))

    assert platform.calls == [("remove_comment", 100, "spam")]


def test_comment_from_moderator_is_left_alone(storage, platform, identity) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_comment_rule(SPAM_RULE, community_id)
    processor = ModerationProcessor(storage, platform, identity)

    asyncio.run(processor.handle_comment(_comment(MOD_ID, actor=MOD_ACTOR)))

    assert platform.calls == []


def test_comment_from_whitelisted_user_is_left_alone(storage, platform, identity) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_comment_rule(SPAM_RULE, community_id)
    storage.add_exception_rule(ExceptionRule(community="pcm", user_actor_id=USER_ACTOR), community_id)
    processor = ModerationProcessor(storage, platform, identity)

    asyncio.run(processor.handle_comment(_comment(USER_ID)))

    assert platform.calls == []


def test_first_matching_post_rule_wins(storage, platform, identity) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_post_rule(
        PostRule(community="pcm", field="title", match="crypto", match_kind=MatchKind.EXACT, removal_reason="first"),
        community_id,
    )
    storage.add_post_rule(
        PostRule(
            community="pcm",
            field="title",
            match="free",
            match_kind=MatchKind.EXACT,
            message="second",
            removal_reason="second",
        ),
        community_id,
    )
    processor = ModerationProcessor(storage, platform, identity)

    asyncio.run(processor.handle_post(_post()))

    assert platform.calls == [("remove_post", 50, "first")]


def test_post_removal_then_reply(storage, platform, identity) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_post_rule(
        PostRule(
            community="pcm",
            field="title",
            match=r"cr[iy]pto",
            match_kind=MatchKind.REGEX,
            message="No crypto here.",
            removal_reason="rule 3",
        ),
        community_id,
    )
    processor = ModerationProcessor(storage, platform, identity)

    asyncio.run(processor.handle_post(_post()))

    assert platform.calls == [
        ("remove_post", 50, "rule 3"),
        ("create_comment", 50, "No crypto here.", None),
    ]


def test_failed_reply_keeps_removal(storage, platform, identity) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_comment_rule(
        CommentRule(community="pcm", match="spam", match_kind=MatchKind.EXACT, message="No spam."),
        community_id,
    )
    platform.fail_on.add("create_comment")
    processor = ModerationProcessor(storage, platform, identity)

    asyncio.run(processor.handle_comment(_comment(USER_ID)))

    assert platform.calls == [("remove_comment", 100, None)]


def test_bot_never_moderates_itself(storage, platform, identity) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_comment_rule(
        CommentRule(community="pcm", match="spam", match_kind=MatchKind.EXACT, mod_exempt=False),
        community_id,
    )
    storage.add_post_rule(
        PostRule(community="pcm", field="title", match="crypto", match_kind=MatchKind.EXACT, mod_exempt=False),
        community_id,
    )
    storage.add_mention_rule(MentionRule(community="pcm", command="!lock", action=MentionAction.LOCK), community_id)
    processor = ModerationProcessor(storage, platform, identity)

    asyncio.run(processor.handle_comment(_comment(BOT_ID)))
    asyncio.run(processor.handle_post(_post(creator_id=BOT_ID)))
    asyncio.run(processor.handle_mention(_mention(creator_id=BOT_ID)))
    asyncio.run(processor.handle_private_message(PrivateMessageContext(1, BOT_ID, "[]")))

    assert platform.calls == []
    assert platform.moderator_checks == 0


def test_moderator_mention_locks_and_replies(storage, platform, identity) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_mention_rule(
        MentionRule(community="pcm", command="!lock", action=MentionAction.LOCK, message="Locked."),
        community_id,
    )
    processor = ModerationProcessor(storage, platform, identity)

    asyncio.run(processor.handle_mention(_mention()))

    assert ("lock_post", 50, True) in platform.calls
    assert ("create_comment", 50, "Locked.", 200) in platform.calls


def test_moderator_mention_pins(storage, platform, identity) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_mention_rule(MentionRule(community="pcm", command="!pin", action=MentionAction.PIN), community_id)
    processor = ModerationProcessor(storage, platform, identity)

    asyncio.run(processor.handle_mention(_mention(text="@automod !pin")))

    assert platform.calls == [("feature_post", 50, True)]


def test_mention_from_regular_user_is_ignored(storage, platform, identity) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_mention_rule(MentionRule(community="pcm", command="!lock", action=MentionAction.LOCK), community_id)
    processor = ModerationProcessor(storage, platform, identity)

    asyncio.run(processor.handle_mention(_mention(creator_id=USER_ID)))

    assert platform.calls == []


def test_private_message_submission_gets_a_report(storage, platform, identity) -> None:
    processor = ModerationProcessor(storage, platform, identity)
    document = '{"rule": "comment", "community": "pcm", "match": "spam", "type": "exact"}'

    asyncio.run(processor.handle_private_message(PrivateMessageContext(1, MOD_ID, document)))

    [(name, recipient, text)] = platform.calls
    assert name == "send_private_message"
    assert recipient == MOD_ID
    assert "updated successfully" in text
    community_id = storage.get_community("pcm", PCM_ID)
    assert [rule.match for rule in storage.list_comment_rules(community_id)] == ["spam"]
