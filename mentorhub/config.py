"""
Centralized configuration for the mentorhub session notification service.

All settings come from environment variables so the same code runs in
local dev, CI and production without config files.
"""

import os


# Emails are scheduled at most this far ahead; later times are skipped.
MAX_SCHEDULE_DAYS = 30

# Sessions closer than this get no prep reminders on reschedule.
PREP_REMINDER_CUTOFF_HOURS = 24

DEFAULT_SESSION_DURATION_MINUTES = 60

# All user-facing times are rendered in Eastern Time.
EMAIL_TIMEZONE = "America/New_York"
EMAIL_TIMEZONE_LABEL = "ET"


def is_dev_mode() -> bool:
    """Check if running in development mode (DEV_MODE env)."""
    return os.getenv("DEV_MODE", "").lower() in ("true", "1", "yes")


def is_production() -> bool:
    """Check if running on Railway (production environment)."""
    return bool(os.environ.get("RAILWAY_ENVIRONMENT"))


def get_api_port() -> int:
    """Get API server port from env or default."""
    return int(os.getenv("API_PORT", "8000"))


def get_app_url() -> str:
    """Get the web app base URL used for links inside emails."""
    return os.environ.get("APP_URL", "http://localhost:3000").rstrip("/")


def get_allowed_origins() -> list[str]:
    """Get list of allowed CORS origins."""
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

    app_url = get_app_url()
    if app_url not in origins:
        origins.append(app_url)

    env_frontend = os.environ.get("FRONTEND_URL")
    if env_frontend and env_frontend not in origins:
        origins.append(env_frontend)

    return origins


# =============================================================================
# Email delivery
# =============================================================================


def is_email_test_mode() -> bool:
    """Redirect every outgoing email to EMAIL_TEST_RECIPIENT when enabled."""
    return os.getenv("EMAIL_TEST_MODE", "").lower() in ("true", "1", "yes")


def get_email_test_recipient() -> str | None:
    return os.environ.get("EMAIL_TEST_RECIPIENT") or None


def is_email_scheduler_disabled() -> bool:
    return os.getenv("DISABLE_EMAIL_SCHEDULER", "").lower() in ("true", "1", "yes")


def get_email_rate_limit() -> float:
    """Maximum provider calls per second (SendGrid and the dispatch job store)."""
    return float(os.getenv("EMAIL_RATE_LIMIT_PER_SECOND", "2"))


def get_provider_timeout() -> float:
    """Per-call timeout in seconds for provider requests."""
    return float(os.getenv("EMAIL_PROVIDER_TIMEOUT", "10"))


def get_provider_max_retries() -> int:
    """Retries for transient transport errors on a single provider call."""
    return int(os.getenv("EMAIL_PROVIDER_MAX_RETRIES", "3"))


# Required environment variables for production
# Format: (name, description, required_in_dev)
REQUIRED_ENV_VARS = [
    ("DATABASE_URL", "PostgreSQL connection string", True),
    ("SENDGRID_API_KEY", "SendGrid API key for outgoing email", False),
    ("APP_URL", "Web app URL used in email links", False),
]


def check_required_env_vars() -> tuple[bool, list[str]]:
    """
    Check that required environment variables are set.

    Returns:
        (all_ok, warnings): Tuple of success flag and list of warning messages
    """
    warnings = []
    errors = []
    in_dev = is_dev_mode()

    for name, description, required_in_dev in REQUIRED_ENV_VARS:
        value = os.environ.get(name)

        if not value:
            if is_production():
                errors.append(f"  ✗ {name}: Not set ({description})")
            elif required_in_dev or not in_dev:
                warnings.append(f"  ⚠ {name}: Not set ({description})")

    if is_email_test_mode() and not get_email_test_recipient():
        warnings.append(
            "  ⚠ EMAIL_TEST_RECIPIENT: Not set (EMAIL_TEST_MODE is on, emails go to their real recipients)"
        )

    if errors:
        for error in errors:
            print(error)
        return False, warnings

    return True, warnings
