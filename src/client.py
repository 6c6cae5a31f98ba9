"""Lemmy client factory for automod.

Credentials come from the environment so they stay out of config.json and
out of the repository.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from adapters.lemmy_client import LemmyClient
from core.config import LemmyConfig


def build_client(timeout_seconds: float) -> LemmyClient:
    """Create a Lemmy client from environment variables.

    We read LEMMY_INSTANCE/LEMMY_USERNAME/LEMMY_PASSWORD via python-dotenv so
    a local .env file works as well as a real environment.
    """

    load_dotenv()

    instance = os.getenv("LEMMY_INSTANCE")
    username = os.getenv("LEMMY_USERNAME")
    password = os.getenv("LEMMY_PASSWORD")

    # Fail fast on missing credentials instead of failing on the first request.
    if not instance or not username or not password:
        raise RuntimeError("Missing LEMMY_INSTANCE, LEMMY_USERNAME or LEMMY_PASSWORD in environment")

    logging.getLogger(__name__).info("Initializing Lemmy client for %s", instance)

    return LemmyClient(
        LemmyConfig(
            instance=instance.removeprefix("https://").rstrip("/"),
            username=username,
            password=password,
            timeout_seconds=timeout_seconds,
        )
    )
