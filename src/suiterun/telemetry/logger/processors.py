# src/suiterun/telemetry/logger/processors.py

"""
Custom structlog processors used by suiterun's logging pipeline.
"""

from structlog.typing import EventDict, WrappedLogger

LOG_EMOJIS = {
    "debug": "🐛",
    "info": "ℹ️",
    "warning": "⚠️",
    "error": "❌",
    "critical": "💥",
}

# Key a caller may pass to pick an emoji; it is not rendered.
EMOJI_KEY = "emoji"


def add_emoji_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Prefixes the event message with an emoji for the log level."""
    emoji = event_dict.pop(EMOJI_KEY, None) or LOG_EMOJIS.get(method_name)
    if emoji is None:
        level = event_dict.get("level")
        if isinstance(level, str):
            emoji = LOG_EMOJIS.get(level.lower())
    event = event_dict.get("event")
    if emoji and isinstance(event, str):
        event_dict["event"] = f"{emoji} {event}"
    return event_dict


def remove_extra_keys_processor(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Drops context keys bound to None so console lines stay short."""
    for key in [k for k, v in event_dict.items() if v is None and k != "event"]:
        del event_dict[key]
    return event_dict


# 🧪⚙️
