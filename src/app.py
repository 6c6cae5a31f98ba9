"""Application entry point for the automod bot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import re
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.sqlite_storage import SQLiteStorage
from client import build_client
from core.config import PollConfig
from core.errors import SchemaError
from core.identity import BotIdentity
from core.parser import parse
from core.processor import ModerationProcessor
from poller import EventPoller

NAME = "AUTOMOD"
FONT = "tarty-1"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
MASK = "***"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _MaskingFormatter(logging.Formatter):
    """Replaces credential values anywhere in the rendered line, tracebacks included."""

    def __init__(self, secrets: list[str]) -> None:
        super().__init__(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
        # Longest first so a secret that contains another is masked whole.
        ordered = sorted({secret for secret in secrets if secret}, key=len, reverse=True)
        self._pattern = re.compile("|".join(map(re.escape, ordered))) if ordered else None

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if self._pattern is None:
            return line
        return self._pattern.sub(MASK, line)


def _secret_values(redact: dict) -> list[str]:
    """Resolve the configured environment variable names to their values."""

    if not redact.get("enabled", False):
        return []
    return [os.environ[name] for name in redact.get("patterns", []) if os.environ.get(name)]


def _rotating_file_handler(file_cfg: dict) -> logging.Handler:
    path = file_cfg.get("path", "logs/automod.log")
    if not os.path.isabs(path):
        path = os.path.join(settings.PROJECT_ROOT, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def _configure_logging(config: Optional[dict] = None) -> None:
    config = settings.LOGGING if config is None else config
    if not config or not config.get("enabled", False):
        return

    # Secrets usually live in .env, so load it before reading their values.
    load_dotenv()
    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    formatter = _MaskingFormatter(_secret_values(config.get("redact", {})))

    handlers: list[logging.Handler] = []
    if config.get("console", True):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(_rotating_file_handler(file_cfg))
    if not handlers:
        return

    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers, force=True)


def _init_storage() -> SQLiteStorage:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    return storage


async def _serve(storage: SQLiteStorage) -> None:
    logger = logging.getLogger(__name__)
    client = build_client(settings.HTTP_TIMEOUT_SECONDS)
    try:
        await client.login()

        # The bot id is resolved before any handler runs and never refreshed.
        identity = BotIdentity()
        await identity.initialize(client, client.username)

        processor = ModerationProcessor(storage, client, identity)
        poll_config = PollConfig(
            interval_seconds=settings.POLL_INTERVAL_SECONDS,
            page_limit=settings.POLL_PAGE_LIMIT,
            communities=frozenset(settings.POLL_COMMUNITIES) or None,
        )
        poller = EventPoller(client, storage, processor, identity, poll_config)
        logger.info("Connected. Listening for posts, comments, mentions and messages...")
        await poller.run_forever()
    finally:
        await client.close()


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting automod")
    storage = _init_storage()
    try:
        asyncio.run(_serve(storage))
    except KeyboardInterrupt:
        logger.info("Stopped")


def _validate(path: str) -> int:
    """Parse a rules file offline and print one line per item."""

    with open(path, "r", encoding="utf-8") as handle:
        results = parse(handle.read())

    failures = 0
    for index, item in enumerate(results, start=1):
        if isinstance(item, SchemaError):
            failures += 1
            print(f"{index}. rejected: {item.detail}")
        else:
            print(f"{index}. {item.kind.value} rule for {item.community}")
    print(f"{len(results) - failures} valid, {failures} rejected")
    return 1 if failures else 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="automod")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bot")
    subparsers.add_parser("init-db", help="Create the database tables")
    validate_parser = subparsers.add_parser("validate", help="Check a rules file without submitting it")
    validate_parser.add_argument("path")

    args = parser.parse_args(argv)
    if args.command == "init-db":
        _init_storage()
        print(f"Database ready at {settings.DB_PATH}")
        return
    if args.command == "validate":
        raise SystemExit(_validate(args.path))
    _run()


if __name__ == "__main__":
    main()
