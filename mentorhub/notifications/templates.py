"""Email templates from messages.yaml, keyed by message type."""

from pathlib import Path

import yaml


TEMPLATES_PATH = Path(__file__).with_name("messages.yaml")

_templates: dict[str, dict[str, str]] | None = None


def load_templates() -> dict[str, dict[str, str]]:
    """Read messages.yaml once and keep it for the life of the process."""
    global _templates
    if _templates is None:
        _templates = yaml.safe_load(TEMPLATES_PATH.read_text(encoding="utf-8"))
    return _templates


def render_email(message_type: str, context: dict) -> tuple[str, str]:
    """
    Fill in the subject and body templates for a message type.

    Raises:
        KeyError: Unknown message type, or a placeholder missing from context
    """
    entry = load_templates()[message_type]
    subject = entry["email_subject"].format(**context)
    body = entry["email_body"].format(**context)
    return subject, body.strip()
