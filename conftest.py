"""Root pytest configuration."""

from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load environment variables before tests run
_root = Path(__file__).parent
load_dotenv(_root / ".env")
load_dotenv(_root / ".env.local", override=True)


@pytest.fixture(scope="session")
def event_loop_policy():
    """Use default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture(autouse=True)
def fast_provider_rate_limit():
    """Lift the provider rate limit so tests never sleep on it."""
    from unittest.mock import patch

    from mentorhub.notifications.throttle import RateLimiter

    with patch("mentorhub.notifications.throttle._limiter", RateLimiter(10_000)):
        yield
