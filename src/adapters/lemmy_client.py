"""Lemmy HTTP API adapter.

Implements the core PlatformPort on top of the Lemmy v3 REST API, plus the
listing endpoints the polling loop reads events from. Every transport or
API failure surfaces as CapabilityError; nothing is retried here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from core.config import LemmyConfig
from core.errors import CapabilityError
from core.models import CommunityRef

LOGGER = logging.getLogger(__name__)

API_PREFIX = "/api/v3"

# Lemmy answers lookups of unknown names with an error payload rather than
# an empty result.
_NOT_FOUND_ERRORS = {"couldnt_find_community", "couldnt_find_person", "not_found"}


class LemmyClient:
    """Async Lemmy client authenticated as the bot account."""

    def __init__(self, config: LemmyConfig) -> None:
        self._config = config
        # A bare host means https; an explicit scheme is kept (local instances).
        origin = config.instance if "://" in config.instance else f"https://{config.instance}"
        self._base_url = f"{origin}{API_PREFIX}"
        self._jwt: Optional[str] = None
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def instance(self) -> str:
        return self._config.instance

    @property
    def username(self) -> str:
        return self._config.username

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create persistent HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.timeout_seconds),
            )
        return self._session

    async def close(self) -> None:
        """Close HTTP session on shutdown."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        payload: Optional[dict] = None,
        allow_missing: bool = False,
    ) -> Optional[dict[str, Any]]:
        session = await self._get_session()
        headers = {"Authorization": f"Bearer {self._jwt}"} if self._jwt else {}
        if params:
            # aiohttp only accepts str/int/float query values.
            params = {
                key: str(value).lower() if isinstance(value, bool) else value
                for key, value in params.items()
                if value is not None
            }
        try:
            async with session.request(
                method,
                f"{self._base_url}{path}",
                params=params,
                json=payload,
                headers=headers,
            ) as response:
                body = await response.json(content_type=None)
                if response.status >= 400:
                    error = body.get("error") if isinstance(body, dict) else None
                    if allow_missing and error in _NOT_FOUND_ERRORS:
                        return None
                    raise CapabilityError(f"{method} {path} failed with {response.status}: {error or body}")
                return body
        except aiohttp.ClientError as exc:
            raise CapabilityError(f"{method} {path} failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise CapabilityError(f"{method} {path} timed out after {self._config.timeout_seconds}s") from exc
        except ValueError as exc:
            # Non-JSON body (proxy error page, maintenance page).
            raise CapabilityError(f"{method} {path} returned an invalid body") from exc

    async def login(self) -> None:
        """Log in and keep the JWT for subsequent requests."""

        body = await self._request(
            "POST",
            "/user/login",
            payload={"username_or_email": self._config.username, "password": self._config.password},
        )
        jwt = body.get("jwt") if body else None
        if not jwt:
            raise CapabilityError("Login did not return a token")
        self._jwt = jwt
        LOGGER.info("Logged in to %s as %s", self._config.instance, self._config.username)

    # PlatformPort

    async def resolve_community(self, name: str) -> Optional[CommunityRef]:
        """Look a community up by name, returning the name Lemmy stores for it.

        Lemmy matches names case-insensitively and accepts "name@instance".
        """

        body = await self._request("GET", "/community", params={"name": name}, allow_missing=True)
        if body is None:
            return None
        community = body["community_view"]["community"]
        return CommunityRef(id=int(community["id"]), name=community["name"])

    async def resolve_community_id(self, name: str) -> Optional[int]:
        community = await self.resolve_community(name)
        return community.id if community else None

    async def is_community_moderator(self, person_id: int, community_id: int) -> bool:
        body = await self._request("GET", "/community", params={"id": community_id})
        moderators = body.get("moderators", []) if body else []
        return any(entry["moderator"]["id"] == person_id for entry in moderators)

    async def resolve_user_id(self, name: str) -> int:
        body = await self._request("GET", "/user", params={"username": name})
        return int(body["person_view"]["person"]["id"])

    async def send_private_message(self, recipient_id: int, text: str) -> None:
        await self._request("POST", "/private_message", payload={"content": text, "recipient_id": recipient_id})

    async def create_comment(self, post_id: int, text: str, parent_id: Optional[int] = None) -> None:
        payload: dict[str, Any] = {"content": text, "post_id": post_id}
        if parent_id is not None:
            payload["parent_id"] = parent_id
        await self._request("POST", "/comment", payload=payload)

    async def remove_comment(self, comment_id: int, reason: Optional[str] = None) -> None:
        await self._request(
            "POST",
            "/comment/remove",
            payload={"comment_id": comment_id, "removed": True, "reason": reason},
        )

    async def remove_post(self, post_id: int, reason: Optional[str] = None) -> None:
        await self._request(
            "POST",
            "/post/remove",
            payload={"post_id": post_id, "removed": True, "reason": reason},
        )

    async def lock_post(self, post_id: int, locked: bool) -> None:
        await self._request("POST", "/post/lock", payload={"post_id": post_id, "locked": locked})

    async def feature_post(self, post_id: int, featured: bool) -> None:
        await self._request(
            "POST",
            "/post/feature",
            payload={"post_id": post_id, "featured": featured, "feature_type": "Community"},
        )

    # Feeds used by the polling loop

    async def list_posts(self, limit: int, community_name: Optional[str] = None) -> list[dict]:
        params = {"sort": "New", "limit": limit, "community_name": community_name}
        if community_name is None:
            params["type_"] = "ModeratorView"
        body = await self._request("GET", "/post/list", params=params)
        return body.get("posts", []) if body else []

    async def list_comments(self, limit: int, community_name: Optional[str] = None) -> list[dict]:
        params = {"sort": "New", "limit": limit, "community_name": community_name}
        if community_name is None:
            params["type_"] = "ModeratorView"
        body = await self._request("GET", "/comment/list", params=params)
        return body.get("comments", []) if body else []

    async def list_mentions(self, limit: int) -> list[dict]:
        body = await self._request(
            "GET",
            "/user/mention",
            params={"sort": "New", "unread_only": True, "limit": limit},
        )
        return body.get("mentions", []) if body else []

    async def list_private_messages(self, limit: int) -> list[dict]:
        body = await self._request(
            "GET",
            "/private_message/list",
            params={"unread_only": True, "limit": limit},
        )
        return body.get("private_messages", []) if body else []

    async def mark_mention_read(self, person_mention_id: int) -> None:
        await self._request(
            "POST",
            "/user/mention/mark_as_read",
            payload={"person_mention_id": person_mention_id, "read": True},
        )

    async def mark_private_message_read(self, private_message_id: int) -> None:
        await self._request(
            "POST",
            "/private_message/mark_as_read",
            payload={"private_message_id": private_message_id, "read": True},
        )
