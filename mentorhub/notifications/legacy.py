"""
Codec for the scheduled-email map stored inline on session records.

Older session records keep a JSON object mapping ``"{type}_{email}"`` to
the provider message id. The job store is the source of truth now; this
map is only read and written for import/export.
"""

import json
import logging

logger = logging.getLogger(__name__)


ScheduledEmailIds = dict[str, str]


def parse_scheduled_email_ids(raw: str | None) -> ScheduledEmailIds:
    """
    Parse the inline JSON map.

    Returns an empty map for missing or unreadable input rather than raising,
    since a corrupt legacy field must not block session updates.
    """
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring unparseable scheduled email ids")
        return {}
    if not isinstance(parsed, dict):
        logger.warning(f"Ignoring scheduled email ids of type {type(parsed).__name__}")
        return {}
    return {
        key: value
        for key, value in parsed.items()
        if isinstance(key, str) and isinstance(value, str)
    }


def stringify_scheduled_email_ids(email_ids: ScheduledEmailIds) -> str:
    return json.dumps(email_ids)
