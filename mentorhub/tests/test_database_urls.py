"""Tests for DATABASE_URL handling."""

import pytest

from mentorhub.database import (
    get_async_database_url,
    get_sync_database_url,
    is_configured,
)

URL = "postgresql://user:pw@db.example.com:5432/mentorhub"
ASYNC_URL = "postgresql+asyncpg://user:pw@db.example.com:5432/mentorhub"


class TestDatabaseUrls:
    def test_plain_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", URL)
        assert get_sync_database_url() == URL
        assert get_async_database_url() == ASYNC_URL

    def test_asyncpg_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", ASYNC_URL)
        assert get_sync_database_url() == URL
        assert get_async_database_url() == ASYNC_URL

    def test_unset(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        assert is_configured() is False
        with pytest.raises(ValueError):
            get_sync_database_url()

    def test_not_postgres(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///local.db")
        assert is_configured() is True
        with pytest.raises(ValueError):
            get_async_database_url()
