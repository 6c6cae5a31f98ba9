"""JSON schemas for the four rule submission shapes.

The parser tries them in the order of ``RULE_SCHEMAS``; the first schema an
item validates against decides its kind.
"""

from __future__ import annotations

from itertools import permutations

from core.models import POST_FIELDS


def _post_field_values() -> list[str]:
    values: list[str] = []
    for size in range(1, len(POST_FIELDS) + 1):
        values.extend("+".join(combo) for combo in permutations(POST_FIELDS, size))
    return values


_NULLABLE_TEXT = {"type": ["string", "null"]}
_MATCH_KIND = {"type": "string", "enum": ["exact", "regex"]}
_NON_EMPTY = {"type": "string", "minLength": 1}

POST_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "rule": {"const": "post"},
        "community": _NON_EMPTY,
        "field": {"type": "string", "enum": _post_field_values()},
        "match": _NON_EMPTY,
        "type": _MATCH_KIND,
        "whitelist_exempt": {"type": "boolean"},
        "whitelist": {"type": "boolean"},
        "mod_exempt": {"type": "boolean"},
        "message": _NULLABLE_TEXT,
        "removal_reason": _NULLABLE_TEXT,
    },
    "required": ["rule", "community", "field", "match", "type"],
    "not": {"required": ["whitelist", "whitelist_exempt"]},
    "additionalProperties": False,
}

COMMENT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "rule": {"const": "comment"},
        "community": _NON_EMPTY,
        "match": _NON_EMPTY,
        "type": _MATCH_KIND,
        "whitelist_exempt": {"type": "boolean"},
        "whitelist": {"type": "boolean"},
        "mod_exempt": {"type": "boolean"},
        "message": _NULLABLE_TEXT,
        "removal_reason": _NULLABLE_TEXT,
    },
    "required": ["rule", "community", "match", "type"],
    "not": {"required": ["whitelist", "whitelist_exempt"]},
    "additionalProperties": False,
}

MENTION_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "rule": {"const": "mention"},
        "community": _NON_EMPTY,
        "command": _NON_EMPTY,
        "action": {"type": "string", "enum": ["pin", "lock"]},
        "message": _NULLABLE_TEXT,
    },
    "required": ["rule", "community", "command", "action"],
    "additionalProperties": False,
}

EXCEPTION_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "rule": {"const": "exception"},
        "community": _NON_EMPTY,
        "user_actor_id": _NON_EMPTY,
    },
    "required": ["rule", "community", "user_actor_id"],
    "additionalProperties": False,
}

RULE_SCHEMAS = (
    ("post", POST_SCHEMA),
    ("comment", COMMENT_SCHEMA),
    ("mention", MENTION_SCHEMA),
    ("exception", EXCEPTION_SCHEMA),
)
