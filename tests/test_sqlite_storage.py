from __future__ import annotations

import pytest

from core.errors import StorageError
from core.models import CommentRule, ExceptionRule, MatchKind, MentionAction, MentionRule, PostRule
from fakes import MOD_ACTOR, PCM_ID, USER_ACTOR


def _post_rule(field: str = "title", match: str = "crypto", **overrides) -> PostRule:
    values = dict(
        community="pcm",
        field=field,
        match=match,
        match_kind=MatchKind.EXACT,
        whitelist_exempt=False,
        mod_exempt=True,
        message="Removed.",
        removal_reason="spam",
    )
    values.update(overrides)
    return PostRule(**values)


def test_get_community_before_and_after_add(storage) -> None:
    assert storage.get_community("pcm", PCM_ID) is None
    community_id = storage.add_community("pcm", PCM_ID)
    assert storage.get_community("pcm", PCM_ID) == community_id
    assert storage.get_community("pcm", PCM_ID + 1) is None


def test_add_community_twice_creates_duplicate_row(storage) -> None:
    first = storage.add_community("pcm", PCM_ID)
    second = storage.add_community("pcm", PCM_ID)
    assert first != second
    # Lookups keep returning the oldest row.
    assert storage.get_community("pcm", PCM_ID) == first


def test_multi_field_post_rule_expands_into_one_row_per_field(storage) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_post_rule(_post_rule(field="title+link"), community_id)

    rules = storage.list_post_rules(community_id)
    assert [rule.field for rule in rules] == ["title", "link"]
    for rule in rules:
        assert rule.match == "crypto"
        assert rule.match_kind == MatchKind.EXACT
        assert rule.message == "Removed."
        assert rule.removal_reason == "spam"
        assert rule.community == "pcm"


def test_multi_field_insert_is_all_or_nothing(storage) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_post_rule(_post_rule(field="link"), community_id)

    with pytest.raises(StorageError):
        storage.add_post_rule(_post_rule(field="title+link"), community_id)

    assert [rule.field for rule in storage.list_post_rules(community_id)] == ["link"]


def test_duplicate_rules_raise_storage_error(storage) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    comment = CommentRule(community="pcm", match="spam", match_kind=MatchKind.EXACT)
    storage.add_comment_rule(comment, community_id)
    with pytest.raises(StorageError):
        storage.add_comment_rule(comment, community_id)

    mention = MentionRule(community="pcm", command="!lock", action=MentionAction.LOCK)
    storage.add_mention_rule(mention, community_id)
    with pytest.raises(StorageError):
        storage.add_mention_rule(mention, community_id)


def test_rule_for_unknown_community_violates_foreign_key(storage) -> None:
    with pytest.raises(StorageError):
        storage.add_comment_rule(CommentRule(community="pcm", match="x", match_kind=MatchKind.EXACT), 999)


def test_rules_come_back_in_insertion_order(storage) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    for match in ("zzz", "aaa", "mmm"):
        storage.add_comment_rule(CommentRule(community="pcm", match=match, match_kind=MatchKind.EXACT), community_id)

    rules = storage.get_comment_rules(USER_ACTOR, community_id, is_moderator=False)
    assert [rule.match for rule in rules] == ["zzz", "aaa", "mmm"]


def test_rules_are_scoped_per_community(storage) -> None:
    pcm = storage.add_community("pcm", PCM_ID)
    other = storage.add_community("other", PCM_ID + 1)
    storage.add_post_rule(_post_rule(), pcm)

    assert storage.list_post_rules(other) == []
    assert len(storage.list_post_rules(pcm)) == 1


def test_whitelist_lookup(storage) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_exception_rule(ExceptionRule(community="pcm", user_actor_id=USER_ACTOR), community_id)

    assert storage.is_whitelisted(USER_ACTOR, community_id)
    assert not storage.is_whitelisted(MOD_ACTOR, community_id)


def test_get_post_rules_applies_exemptions(storage) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_post_rule(_post_rule(match="always", mod_exempt=False, whitelist_exempt=False), community_id)
    storage.add_post_rule(_post_rule(match="not-mods", mod_exempt=True, whitelist_exempt=False), community_id)
    storage.add_post_rule(_post_rule(match="not-whitelisted", mod_exempt=False, whitelist_exempt=True), community_id)
    storage.add_exception_rule(ExceptionRule(community="pcm", user_actor_id=USER_ACTOR), community_id)

    def matches(actor: str, is_moderator: bool) -> list[str]:
        return [rule.match for rule in storage.get_post_rules(actor, community_id, is_moderator)]

    assert matches(MOD_ACTOR, is_moderator=False) == ["always", "not-mods", "not-whitelisted"]
    assert matches(MOD_ACTOR, is_moderator=True) == ["always", "not-whitelisted"]
    assert matches(USER_ACTOR, is_moderator=False) == ["always", "not-mods"]
    assert matches(USER_ACTOR, is_moderator=True) == ["always"]


def test_mention_rules_ignore_exemptions(storage) -> None:
    community_id = storage.add_community("pcm", PCM_ID)
    storage.add_mention_rule(MentionRule(community="pcm", command="!pin", action=MentionAction.PIN), community_id)
    storage.add_mention_rule(
        MentionRule(community="pcm", command="!lock", action=MentionAction.LOCK, message="Locked."), community_id
    )

    rules = storage.get_mention_rules(community_id)
    assert [(rule.command, rule.action) for rule in rules] == [
        ("!pin", MentionAction.PIN),
        ("!lock", MentionAction.LOCK),
    ]
    assert rules[1].message == "Locked."


def test_poll_cursor_upsert(storage) -> None:
    assert storage.get_last_id("posts") is None
    storage.set_last_id("posts", 10)
    storage.set_last_id("posts", 12)
    assert storage.get_last_id("posts") == 12
    assert storage.get_last_id("comments") is None
