"""SendGrid email delivery channel."""

import logging
import os
import re
from dataclasses import dataclass, replace

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from mentorhub.config import get_email_test_recipient, is_email_test_mode

from ..errors import EmailDeliveryError

logger = logging.getLogger(__name__)


SENDGRID_API_KEY = os.environ.get("SENDGRID_API_KEY")
FROM_EMAIL = os.environ.get("FROM_EMAIL", "sessions@mentorhub.dev")
FROM_NAME = os.environ.get("FROM_NAME", "MentorHub")

TEST_SUBJECT_PREFIX = "[TEST] "

# Regex to match markdown links: [text](url)
MARKDOWN_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")

_client: SendGridAPIClient | None = None


@dataclass
class EmailMessage:
    """Email message data."""

    to_email: str
    subject: str
    body: str


def markdown_to_html(text: str) -> str:
    """
    Convert markdown-style links to HTML and wrap in basic HTML structure.

    Converts [text](url) to <a href="url">text</a> and preserves line breaks.
    """
    html_body = MARKDOWN_LINK_PATTERN.sub(r'<a href="\2">\1</a>', text)
    html_body = html_body.replace("\n", "<br>\n")

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.5; color: #333;">
{html_body}
</body>
</html>"""


def markdown_to_plain_text(text: str) -> str:
    """
    Convert markdown-style links to plain text with URL in parentheses.

    Converts [text](url) to text (url) for plain text email fallback.
    """
    return MARKDOWN_LINK_PATTERN.sub(r"\1 (\2)", text)


def apply_test_mode(message: EmailMessage) -> EmailMessage:
    """
    Redirect a message to the test inbox when EMAIL_TEST_MODE is on.

    The subject gets a "[TEST] " prefix and the body notes the real recipient.
    """
    if not is_email_test_mode():
        return message
    test_recipient = get_email_test_recipient()
    if not test_recipient:
        return message
    return replace(
        message,
        to_email=test_recipient,
        subject=f"{TEST_SUBJECT_PREFIX}{message.subject}",
        body=f"(Test mode: originally addressed to {message.to_email})\n\n{message.body}",
    )


def _get_sendgrid_client() -> SendGridAPIClient | None:
    """Get or create SendGrid client singleton."""
    global _client
    if _client is None and SENDGRID_API_KEY:
        _client = SendGridAPIClient(SENDGRID_API_KEY)
    return _client


def send_email(message: EmailMessage) -> str | None:
    """
    Send an email via SendGrid.

    The body can contain markdown-style links [text](url) which will be
    converted to HTML links. Both plain text and HTML versions are sent.
    Blocking; callers on the event loop go through throttle.call_provider.

    Returns:
        SendGrid message id (from the X-Message-Id header) if present

    Raises:
        EmailDeliveryError: If SendGrid is not configured or rejects the send
    """
    client = _get_sendgrid_client()
    if not client:
        raise EmailDeliveryError("SendGrid not configured (SENDGRID_API_KEY not set)")

    message = apply_test_mode(message)
    mail = Mail(
        from_email=(FROM_EMAIL, FROM_NAME),
        to_emails=message.to_email,
        subject=message.subject,
        plain_text_content=markdown_to_plain_text(message.body),
        html_content=markdown_to_html(message.body),
    )

    try:
        response = client.send(mail)
    except Exception as e:
        # python_http_client raises HTTPError subclasses carrying status_code;
        # transport errors propagate so the caller can retry them
        status_code = getattr(e, "status_code", None)
        if status_code is None:
            raise
        raise EmailDeliveryError(
            f"SendGrid rejected email to {message.to_email}: {e}",
            status_code=status_code,
        ) from e

    if response.status_code not in (200, 201, 202):
        raise EmailDeliveryError(
            f"SendGrid returned {response.status_code} for {message.to_email}",
            status_code=response.status_code,
        )

    headers = response.headers or {}
    message_id = headers.get("X-Message-Id")
    logger.info(f"Sent email to {message.to_email}: {message.subject}")
    return message_id
