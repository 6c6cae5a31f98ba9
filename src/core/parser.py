"""Parsing of rule submissions into typed rule records.

A submission is a JSON object or an array of objects. Each item is checked
against the known schemas independently, so one malformed item never hides
the valid ones around it.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Union

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from core.errors import SchemaError
from core.models import (
    CommentRule,
    ExceptionRule,
    MatchKind,
    MentionAction,
    MentionRule,
    PostRule,
    Rule,
)
from core.schemas import RULE_SCHEMAS

LOGGER = logging.getLogger(__name__)

ParsedItem = Union[Rule, SchemaError]

_VALIDATORS = [(name, Draft7Validator(schema)) for name, schema in RULE_SCHEMAS]
_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n(.*)\n```\s*$", re.DOTALL)


def _strip_code_fence(document: str) -> str:
    # Lemmy clients render rules pasted into messages as Markdown, so
    # moderators tend to wrap them in a code block.
    text = document.strip()
    fenced = _FENCE.match(text)
    if fenced:
        return fenced.group(1)
    return text


def _whitelist_flag(item: dict) -> bool:
    if "whitelist_exempt" in item:
        return item["whitelist_exempt"]
    return item.get("whitelist", False)


def _build_rule(name: str, item: dict) -> Rule:
    if name == "post":
        return PostRule(
            community=item["community"],
            field=item["field"],
            match=item["match"],
            match_kind=MatchKind(item["type"]),
            whitelist_exempt=_whitelist_flag(item),
            mod_exempt=item.get("mod_exempt", True),
            message=item.get("message"),
            removal_reason=item.get("removal_reason"),
        )
    if name == "comment":
        return CommentRule(
            community=item["community"],
            match=item["match"],
            match_kind=MatchKind(item["type"]),
            whitelist_exempt=_whitelist_flag(item),
            mod_exempt=item.get("mod_exempt", True),
            message=item.get("message"),
            removal_reason=item.get("removal_reason"),
        )
    if name == "mention":
        return MentionRule(
            community=item["community"],
            command=item["command"],
            action=MentionAction(item["action"]),
            message=item.get("message"),
        )
    if name == "exception":
        return ExceptionRule(community=item["community"], user_actor_id=item["user_actor_id"])
    raise ValueError(f"Unsupported rule schema: {name}")


def _describe_failure(item: Any) -> str:
    """Explain why an item fits no schema, using the schema it claims to be."""

    if not isinstance(item, dict):
        return f"expected an object, got {type(item).__name__}"
    claimed = item.get("rule")
    for name, validator in _VALIDATORS:
        if name == claimed:
            error = best_match(validator.iter_errors(item))
            if error is not None:
                return f"{name}: {error.message}"
    return "matches no known rule shape"


def parse_item(item: Any, index: int = 0) -> ParsedItem:
    """Validate one decoded item and return its typed rule or a SchemaError."""

    for name, validator in _VALIDATORS:
        if not validator.is_valid(item):
            continue
        if item.get("type") == MatchKind.REGEX.value:
            try:
                re.compile(item["match"])
            except re.error as exc:
                return SchemaError(index, f"invalid regex {item['match']!r}: {exc}")
        return _build_rule(name, item)
    return SchemaError(index, _describe_failure(item))


def parse(document: str) -> List[ParsedItem]:
    """Parse a submission document into rules and per-item schema errors."""

    try:
        payload = json.loads(_strip_code_fence(document))
    except json.JSONDecodeError as exc:
        LOGGER.info("Submission is not valid JSON: %s", exc)
        return [SchemaError(0, f"invalid JSON: {exc.msg}")]

    if isinstance(payload, dict):
        items = [payload]
    elif isinstance(payload, list):
        items = payload
    else:
        return [SchemaError(0, "expected an object or an array")]

    parsed = [parse_item(item, index) for index, item in enumerate(items)]
    LOGGER.debug(
        "Parsed %s item(s), %s rejected",
        len(parsed),
        sum(isinstance(result, SchemaError) for result in parsed),
    )
    return parsed
