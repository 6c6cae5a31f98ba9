"""SQLite storage adapter.

Implements the core RuleStorePort using a simple SQLite database.
"""

from __future__ import annotations

from contextlib import contextmanager
import sqlite3
from typing import Iterator, List, Optional

from core.errors import StorageError
from core.models import CommentRule, ExceptionRule, MatchKind, MentionAction, MentionRule, PostRule
from core.resolver import resolve_applicable


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the RuleStorePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and maps errors to StorageError."""

        try:
            conn = self._connect()
            try:
                with conn:
                    yield conn
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StorageError(f"{operation} failed: {exc}") from exc

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - automod_community: surrogate id per (name, platform community id)
        - automod_post / automod_comment / automod_mention: rules per community
        - automod_exception: whitelisted actors per community
        - poll_state: per-feed last processed id for the polling loop
        """

        with self._transaction("init_db") as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            # The surrogate id exists because platform community ids are not
            # guaranteed unique across federated instances.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS automod_community (
                    id              INTEGER PRIMARY KEY,
                    name            TEXT NOT NULL,
                    community_id    INTEGER NOT NULL
                )
                """
            )
            # Rule tables keep the implicit rowid; evaluation order is rowid
            # order, i.e. insertion order.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS automod_post (
                    field               TEXT NOT NULL,
                    match               TEXT NOT NULL,
                    type                TEXT NOT NULL,
                    community_id        INTEGER NOT NULL,
                    whitelist_exempt    INTEGER NOT NULL,
                    mod_exempt          INTEGER NOT NULL,
                    message             TEXT,
                    reason              TEXT,
                    PRIMARY KEY (field, match, community_id),
                    FOREIGN KEY (community_id) REFERENCES automod_community(id)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS automod_comment (
                    match               TEXT NOT NULL,
                    type                TEXT NOT NULL,
                    community_id        INTEGER NOT NULL,
                    whitelist_exempt    INTEGER NOT NULL,
                    mod_exempt          INTEGER NOT NULL,
                    message             TEXT,
                    reason              TEXT,
                    PRIMARY KEY (match, type, community_id),
                    FOREIGN KEY (community_id) REFERENCES automod_community(id)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS automod_mention (
                    command         TEXT NOT NULL,
                    action          TEXT NOT NULL,
                    community_id    INTEGER NOT NULL,
                    message         TEXT,
                    PRIMARY KEY (command, action, community_id),
                    FOREIGN KEY (community_id) REFERENCES automod_community(id)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS automod_exception (
                    user_actor_id   TEXT NOT NULL,
                    community_id    INTEGER NOT NULL,
                    PRIMARY KEY (user_actor_id, community_id),
                    FOREIGN KEY (community_id) REFERENCES automod_community(id)
                )
                """
            )
            # poll_state keeps a single cursor per feed so we can restart the
            # bot without reprocessing old posts, comments or messages.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS poll_state (
                    feed        TEXT PRIMARY KEY,
                    last_id     INTEGER NOT NULL
                )
                """
            )

    def get_community(self, name: str, platform_id: int) -> Optional[int]:
        """Return the internal id for a community, if it was registered."""

        with self._transaction("get_community") as conn:
            row = conn.execute(
                "SELECT id FROM automod_community WHERE name = ? AND community_id = ? ORDER BY id LIMIT 1",
                (name, platform_id),
            ).fetchone()
        return int(row["id"]) if row else None

    def add_community(self, name: str, platform_id: int) -> int:
        """Insert a community row. Callers check get_community first."""

        with self._transaction("add_community") as conn:
            cur = conn.execute(
                "INSERT INTO automod_community (name, community_id) VALUES (?, ?)",
                (name, platform_id),
            )
            return int(cur.lastrowid)

    def add_post_rule(self, rule: PostRule, community_id: int) -> None:
        """Insert one row per field of the rule, all in one transaction."""

        rows = [
            (
                field,
                rule.match,
                rule.match_kind.value,
                community_id,
                int(rule.whitelist_exempt),
                int(rule.mod_exempt),
                rule.message,
                rule.removal_reason,
            )
            for field in rule.fields()
        ]
        with self._transaction("add_post_rule") as conn:
            conn.executemany(
                """
                INSERT INTO automod_post (
                    field, match, type, community_id, whitelist_exempt, mod_exempt, message, reason
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )

    def add_comment_rule(self, rule: CommentRule, community_id: int) -> None:
        with self._transaction("add_comment_rule") as conn:
            conn.execute(
                """
                INSERT INTO automod_comment (
                    match, type, community_id, whitelist_exempt, mod_exempt, message, reason
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    rule.match,
                    rule.match_kind.value,
                    community_id,
                    int(rule.whitelist_exempt),
                    int(rule.mod_exempt),
                    rule.message,
                    rule.removal_reason,
                ),
            )

    def add_mention_rule(self, rule: MentionRule, community_id: int) -> None:
        with self._transaction("add_mention_rule") as conn:
            conn.execute(
                "INSERT INTO automod_mention (command, action, community_id, message) VALUES (?, ?, ?, ?)",
                (rule.command, rule.action.value, community_id, rule.message),
            )

    def add_exception_rule(self, rule: ExceptionRule, community_id: int) -> None:
        with self._transaction("add_exception_rule") as conn:
            conn.execute(
                "INSERT INTO automod_exception (user_actor_id, community_id) VALUES (?, ?)",
                (rule.user_actor_id, community_id),
            )

    def _community_name(self, conn: sqlite3.Connection, community_id: int) -> str:
        row = conn.execute("SELECT name FROM automod_community WHERE id = ?", (community_id,)).fetchone()
        return row["name"] if row else ""

    def list_post_rules(self, community_id: int) -> List[PostRule]:
        """Return every post rule of a community in insertion order."""

        with self._transaction("list_post_rules") as conn:
            community = self._community_name(conn, community_id)
            rows = conn.execute(
                "SELECT * FROM automod_post WHERE community_id = ? ORDER BY rowid",
                (community_id,),
            ).fetchall()
        return [
            PostRule(
                community=community,
                field=row["field"],
                match=row["match"],
                match_kind=MatchKind(row["type"]),
                whitelist_exempt=bool(row["whitelist_exempt"]),
                mod_exempt=bool(row["mod_exempt"]),
                message=row["message"],
                removal_reason=row["reason"],
            )
            for row in rows
        ]

    def list_comment_rules(self, community_id: int) -> List[CommentRule]:
        with self._transaction("list_comment_rules") as conn:
            community = self._community_name(conn, community_id)
            rows = conn.execute(
                "SELECT * FROM automod_comment WHERE community_id = ? ORDER BY rowid",
                (community_id,),
            ).fetchall()
        return [
            CommentRule(
                community=community,
                match=row["match"],
                match_kind=MatchKind(row["type"]),
                whitelist_exempt=bool(row["whitelist_exempt"]),
                mod_exempt=bool(row["mod_exempt"]),
                message=row["message"],
                removal_reason=row["reason"],
            )
            for row in rows
        ]

    def get_post_rules(self, actor_id: str, community_id: int, is_moderator: bool) -> List[PostRule]:
        """Return the post rules that apply to an author, in insertion order."""

        rules = self.list_post_rules(community_id)
        return resolve_applicable(rules, is_moderator, self.is_whitelisted(actor_id, community_id))

    def get_comment_rules(self, actor_id: str, community_id: int, is_moderator: bool) -> List[CommentRule]:
        rules = self.list_comment_rules(community_id)
        return resolve_applicable(rules, is_moderator, self.is_whitelisted(actor_id, community_id))

    def get_mention_rules(self, community_id: int) -> List[MentionRule]:
        with self._transaction("get_mention_rules") as conn:
            community = self._community_name(conn, community_id)
            rows = conn.execute(
                "SELECT * FROM automod_mention WHERE community_id = ? ORDER BY rowid",
                (community_id,),
            ).fetchall()
        return [
            MentionRule(
                community=community,
                command=row["command"],
                action=MentionAction(row["action"]),
                message=row["message"],
            )
            for row in rows
        ]

    def is_whitelisted(self, actor_id: str, community_id: int) -> bool:
        with self._transaction("is_whitelisted") as conn:
            row = conn.execute(
                "SELECT 1 FROM automod_exception WHERE user_actor_id = ? AND community_id = ?",
                (actor_id, community_id),
            ).fetchone()
        return row is not None

    def get_last_id(self, feed: str) -> Optional[int]:
        """Return the last processed id for a polling feed, if any."""

        with self._transaction("get_last_id") as conn:
            row = conn.execute(
                "SELECT last_id FROM poll_state WHERE feed = ?",
                (feed,),
            ).fetchone()
        return int(row["last_id"]) if row else None

    def set_last_id(self, feed: str, last_id: int) -> None:
        """Upsert the last processed id for a polling feed."""

        with self._transaction("set_last_id") as conn:
            conn.execute(
                """
                INSERT INTO poll_state (feed, last_id)
                VALUES (?, ?)
                ON CONFLICT(feed) DO UPDATE SET last_id = excluded.last_id
                """,
                (feed, last_id),
            )
