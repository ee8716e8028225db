"""YAML configuration and env-file loading."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .models import DeliveryConfig
from .notifier import NotificationConfig

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/Los_Angeles"
ENV_FILE = "env/.env"


@dataclass
class AppConfig:
    """Everything needed to assemble the service."""

    timezone: str = DEFAULT_TIMEZONE
    corpus_path: str = "data/kjv.json"
    catalog_path: str = "config/topics.yaml"
    users_path: str = "data/users.json"
    ledger_path: str = "data/sent_verses.json"
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)
    notification: NotificationConfig = field(default_factory=NotificationConfig)
    max_workers: int = 4
    overlap: str = "allow"
    logging: Dict[str, Any] = field(default_factory=dict)


def load_env_file(path: Path) -> bool:
    """Copy KEY=VALUE lines into os.environ; variables already set win."""
    if not path.is_file():
        return False

    pairs = []
    for raw in path.read_text(encoding="utf-8").splitlines():
        key, sep, value = raw.strip().partition("=")
        if sep and key.strip() and not key.startswith("#"):
            pairs.append((key.strip(), value.strip().strip("\"'")))
    for key, value in pairs:
        os.environ.setdefault(key, value)
    return bool(pairs)


def resolve_timezone(cli_value: Optional[str], cfg: dict) -> str:
    """CLI flag, then config, then $TZ, then the default."""
    return cli_value or cfg.get("timezone") or os.getenv("TZ") or DEFAULT_TIMEZONE


def build_config(cfg: dict, timezone: Optional[str] = None) -> AppConfig:
    """Map the raw YAML dict onto AppConfig, filling defaults."""
    corpus = cfg.get("corpus") or {}
    catalog = cfg.get("catalog") or {}
    storage = cfg.get("storage") or {}
    delivery = cfg.get("delivery") or {}
    scheduler = cfg.get("scheduler") or {}
    notify = cfg.get("notification") or {}
    telegram = notify.get("telegram") or {}

    defaults = AppConfig()
    return AppConfig(
        timezone=resolve_timezone(timezone, cfg),
        corpus_path=corpus.get("path", defaults.corpus_path),
        catalog_path=catalog.get("path", defaults.catalog_path),
        users_path=storage.get("users_path", defaults.users_path),
        ledger_path=storage.get("ledger_path", defaults.ledger_path),
        delivery=DeliveryConfig(
            count=int(delivery.get("count", 2)),
            search_pool=int(delivery.get("search_pool", 20)),
            default_topic=str(delivery.get("default_topic") or "encouragement"),
        ),
        notification=NotificationConfig(
            enabled=bool(notify.get("enabled", False)),
            provider=str(notify.get("provider") or ""),
            timeout=float(notify.get("timeout", 10)),
            telegram_bot_token=telegram.get("bot_token"),
            telegram_bot_token_env=telegram.get("bot_token_env", "BOT_TOKEN"),
            telegram_bot_token_file=telegram.get("bot_token_file"),
        ),
        max_workers=int(scheduler.get("max_workers", 4)),
        overlap=str(scheduler.get("overlap") or "allow"),
        logging=dict(cfg.get("logging") or {}),
    )


def load_config(path: str = "config/config.yaml", timezone: Optional[str] = None) -> AppConfig:
    """Load env/.env and the YAML config; a missing file means all defaults."""
    if load_env_file(Path(ENV_FILE)):
        logger.info("Loaded env file: %s", ENV_FILE)

    cfg: dict = {}
    if Path(path).exists():
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    if not cfg:
        logger.warning("Config %s not found or empty, using defaults", path)
    return build_config(cfg, timezone=timezone)
