"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core and app layers expect so they can be built safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PollConfig:
    """Polling settings for the event loop that feeds the processor."""

    interval_seconds: float
    page_limit: int
    communities: Optional[frozenset[str]] = None


@dataclass(frozen=True)
class LemmyConfig:
    """Connection settings consumed by the Lemmy client adapter."""

    instance: str
    username: str
    password: str
    timeout_seconds: float
