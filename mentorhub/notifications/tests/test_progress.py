"""Tests for email job progress aggregation."""

import pytest

from mentorhub.enums import BatchStatus, EmailJobStatus
from mentorhub.notifications.errors import JobStoreUnavailableError
from mentorhub.notifications.progress import (
    derive_overall_status,
    get_batch_progress,
    get_session_progress,
    list_session_batches,
)


S = EmailJobStatus


def _jobs(store, *statuses, **overrides):
    return [store.add(status=status, **overrides) for status in statuses]


class TestDeriveOverallStatus:
    @pytest.mark.parametrize(
        "statuses,expected",
        [
            ((), BatchStatus.pending),
            ((S.pending, S.scheduled), BatchStatus.pending),
            ((S.scheduled, S.processing), BatchStatus.in_progress),
            ((S.completed, S.scheduled), BatchStatus.in_progress),
            ((S.completed, S.completed), BatchStatus.completed),
            ((S.completed, S.failed), BatchStatus.partial_failure),
            ((S.failed, S.scheduled), BatchStatus.partial_failure),
            ((S.failed, S.failed), BatchStatus.failed),
            ((S.completed, S.cancelled), BatchStatus.completed),
            ((S.failed, S.cancelled), BatchStatus.failed),
            ((S.cancelled, S.cancelled), BatchStatus.completed),
        ],
    )
    def test_status_rules(self, fake_store, statuses, expected):
        assert derive_overall_status(_jobs(fake_store, *statuses)) == expected


class TestGetSessionProgress:
    @pytest.mark.asyncio
    async def test_counts_every_status(self, fake_store):
        _jobs(fake_store, S.completed, S.completed, S.failed, S.scheduled)
        fake_store.add(session_id="session-2")

        progress = await get_session_progress("session-1")

        assert progress.total == 4
        assert progress.counts["completed"] == 2
        assert progress.counts["failed"] == 1
        assert progress.counts["scheduled"] == 1
        assert progress.counts["cancelled"] == 0
        assert progress.status == BatchStatus.partial_failure
        assert len(progress.jobs) == 4

    @pytest.mark.asyncio
    async def test_store_down_raises_instead_of_reporting_zero(self, fake_store):
        fake_store.available = False
        with pytest.raises(JobStoreUnavailableError):
            await get_session_progress("session-1")


class TestBatchProgress:
    @pytest.mark.asyncio
    async def test_batch_only_includes_its_jobs(self, fake_store):
        _jobs(fake_store, S.completed, S.completed, batch_id="b1")
        _jobs(fake_store, S.failed, batch_id="b2")

        progress = await get_batch_progress("b1")

        assert progress.total == 2
        assert progress.status == BatchStatus.completed
        assert progress.session_id == "session-1"

    @pytest.mark.asyncio
    async def test_unknown_batch(self, fake_store):
        assert await get_batch_progress("nope") is None

    @pytest.mark.asyncio
    async def test_lists_batches_for_session(self, fake_store):
        _jobs(fake_store, S.completed, batch_id="b1")
        _jobs(fake_store, S.scheduled, S.scheduled, batch_id="b2")

        batches = await list_session_batches("session-1")

        assert [b.batch_id for b in batches] == ["b1", "b2"]
        assert [b.total for b in batches] == [1, 2]

    def test_to_dict_optionally_includes_jobs(self, fake_store):
        from mentorhub.notifications.progress import summarize_jobs

        progress = summarize_jobs(_jobs(fake_store, S.completed), batch_id="b1")

        assert "jobs" not in progress.to_dict()
        assert len(progress.to_dict(include_jobs=True)["jobs"]) == 1
        assert progress.to_dict()["status"] == "completed"
