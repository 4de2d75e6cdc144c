from __future__ import annotations

from datetime import datetime, timezone

from .._models import MessageKey, MessagePullConfig, MessagePutConfig


def now() -> float:
    return datetime.now(timezone.utc).timestamp()


def get_put_config(config: dict | MessagePutConfig | None) -> MessagePutConfig:
    if isinstance(config, dict):
        return MessagePutConfig.from_dict(config)
    return config or MessagePutConfig()


def get_pull_config(
    config: dict | MessagePullConfig | None,
) -> MessagePullConfig:
    if isinstance(config, dict):
        return MessagePullConfig.from_dict(config)
    return config or MessagePullConfig()


def get_key_id(key: str | MessageKey) -> str:
    return key.id if isinstance(key, MessageKey) else key
