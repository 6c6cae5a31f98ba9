"""Rule submission workflow.

Each submitted item walks the same gates, in order:

1) schema validity
2) community exists on the instance
3) submitter moderates the community
4) the bot account moderates the community (live check)
5) community record fetched or created in the store
6) rule persisted

Items are independent: a rejected or failing item never stops the rest of
the batch, and the caller gets one report covering all of them.
"""

from __future__ import annotations

import logging
from typing import List

from core.errors import AuthorizationError, CapabilityError, SchemaError, StorageError
from core.identity import BotIdentity
from core.models import CommunityRef, Rule, RuleKind
from core.parser import ParsedItem, parse
from core.ports import PlatformPort, RuleStorePort
from core.reporting import ItemResult, SubmissionReport

LOGGER = logging.getLogger(__name__)

UNRECOGNIZED_SCHEMA = "unrecognized schema"
UNKNOWN_COMMUNITY = "unknown community"
NOT_A_MODERATOR = "not a moderator"
BOT_NOT_INSTALLED = "bot not installed"
STORAGE_FAILURE = "storage error"
PLATFORM_FAILURE = "platform error"


class SubmissionWorkflow:
    """Authorize and persist submitted rules item by item."""

    def __init__(self, storage: RuleStorePort, platform: PlatformPort, identity: BotIdentity) -> None:
        self._storage = storage
        self._platform = platform
        self._identity = identity

    async def submit(self, submitter_id: int, document: str) -> SubmissionReport:
        """Parse a submission document and process every item."""

        return await self.submit_items(submitter_id, parse(document))

    async def submit_items(self, submitter_id: int, items: List[ParsedItem]) -> SubmissionReport:
        results: List[ItemResult] = []
        for index, item in enumerate(items):
            results.append(await self._process_item(submitter_id, index, item))

        report = SubmissionReport(items=results)
        LOGGER.info(
            "Submission from person %s: %s saved, %s rejected",
            submitter_id,
            len(report.succeeded),
            len(report.failed),
        )
        return report

    async def _process_item(self, submitter_id: int, index: int, item: ParsedItem) -> ItemResult:
        if isinstance(item, SchemaError):
            return ItemResult(index=index, kind=None, reason=UNRECOGNIZED_SCHEMA, detail=item.detail)

        kind = item.kind.value
        try:
            community = await self._authorize(submitter_id, item)
            community_id = self._ensure_community(community)
            self._store_rule(item, community_id)
        except AuthorizationError as exc:
            LOGGER.info("Rejected %s rule for %s: %s", kind, item.community, exc.reason)
            return ItemResult(index=index, kind=kind, reason=exc.reason, detail=item.community)
        except StorageError:
            LOGGER.exception("Failed to store %s rule for %s", kind, item.community)
            return ItemResult(index=index, kind=kind, reason=STORAGE_FAILURE)
        except CapabilityError as exc:
            LOGGER.warning("Platform call failed for %s rule in %s: %s", kind, item.community, exc)
            return ItemResult(index=index, kind=kind, reason=PLATFORM_FAILURE)

        LOGGER.info("Stored %s rule for %s", kind, item.community)
        return ItemResult(index=index, kind=kind)

    async def _authorize(self, submitter_id: int, rule: Rule) -> CommunityRef:
        """Run gates 2 to 4 and return the community as the platform names it."""

        community = await self._platform.resolve_community(rule.community)
        if community is None:
            raise AuthorizationError(UNKNOWN_COMMUNITY)
        if not await self._platform.is_community_moderator(submitter_id, community.id):
            raise AuthorizationError(NOT_A_MODERATOR)
        if not await self._platform.is_community_moderator(self._identity.person_id, community.id):
            raise AuthorizationError(BOT_NOT_INSTALLED)
        return community

    def _ensure_community(self, community: CommunityRef) -> int:
        # Keyed on the platform spelling of the name, which is what events carry.
        # No await between the lookup and the insert, so concurrent handlers
        # on the event loop cannot interleave here.
        community_id = self._storage.get_community(community.name, community.id)
        if community_id is None:
            community_id = self._storage.add_community(community.name, community.id)
            LOGGER.info("Registered community %s (%s)", community.name, community.id)
        return community_id

    def _store_rule(self, rule: Rule, community_id: int) -> None:
        if rule.kind == RuleKind.POST:
            self._storage.add_post_rule(rule, community_id)
        elif rule.kind == RuleKind.COMMENT:
            self._storage.add_comment_rule(rule, community_id)
        elif rule.kind == RuleKind.MENTION:
            self._storage.add_mention_rule(rule, community_id)
        elif rule.kind == RuleKind.EXCEPTION:
            self._storage.add_exception_rule(rule, community_id)
        else:
            raise ValueError(f"Unsupported rule kind: {rule.kind}")
