"""Process-wide identity of the bot account."""

from __future__ import annotations

import logging
from typing import Optional

from core.ports import PlatformPort

LOGGER = logging.getLogger(__name__)


class BotIdentity:
    """Holds the bot's own person id.

    It is resolved once by :meth:`initialize` at startup, before any handler
    is dispatched, and never refreshed. A renamed bot account needs a restart.
    """

    def __init__(self, person_id: Optional[int] = None) -> None:
        self._person_id = person_id

    async def initialize(self, platform: PlatformPort, username: str) -> int:
        self._person_id = await platform.resolve_user_id(username)
        LOGGER.info("Bot account %s resolved to person id %s", username, self._person_id)
        return self._person_id

    @property
    def initialized(self) -> bool:
        return self._person_id is not None

    @property
    def person_id(self) -> int:
        if self._person_id is None:
            raise RuntimeError("BotIdentity used before initialize()")
        return self._person_id

    def is_self(self, person_id: int) -> bool:
        return person_id == self.person_id
