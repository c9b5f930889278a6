# src/testadapter/telemetry/logger/processors.py

"""
Custom structlog processors for testadapter log output.
"""

import logging

from structlog.typing import EventDict, WrappedLogger

LEVEL_EMOJIS: dict[str, str] = {
    "debug": "🐛",
    "info": "ℹ️",
    "warning": "⚠️",
    "error": "❌",
    "critical": "💥",
}

# Callers may pass `emoji_key=...` to pick a domain emoji instead of the level one.
DOMAIN_EMOJIS: dict[str, str] = {
    "launch": "🚀",
    "event": "📨",
    "result": "🧪",
    "kill": "🔪",
    "debug": "🐞",
    "settings": "📄",
    "general": "➡️",
}

EXTRA_KEYS = ("emoji_key",)


def add_emoji_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Prefixes the event message with a domain or level emoji."""
    emoji_key = event_dict.get("emoji_key")
    emoji = DOMAIN_EMOJIS.get(emoji_key) if emoji_key else None
    if emoji is None:
        level = event_dict.get("level", method_name)
        if isinstance(level, int):
            level = logging.getLevelName(level)
        emoji = LEVEL_EMOJIS.get(str(level).lower(), DOMAIN_EMOJIS["general"])

    event = event_dict.get("event")
    if isinstance(event, str):
        event_dict["event"] = f"{emoji} {event}"
    return event_dict


def remove_extra_keys_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Drops bookkeeping keys that should not reach the renderer."""
    for key in EXTRA_KEYS:
        event_dict.pop(key, None)
    return event_dict
