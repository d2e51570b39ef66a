"""Tests for the APScheduler-backed email dispatcher."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from apscheduler.jobstores.base import JobLookupError

from mentorhub.enums import EmailJobStatus
from mentorhub.notifications import dispatch
from mentorhub.notifications.channels.email import EmailMessage
from mentorhub.notifications.errors import (
    DispatchUnavailableError,
    EmailDeliveryError,
    MessageNotFoundError,
)


MESSAGE = EmailMessage(to_email="alice@example.com", subject="Hi", body="Body")


class TestSubmit:
    @pytest.mark.asyncio
    async def test_adds_date_job_carrying_rendered_email(self):
        mock_scheduler = MagicMock()
        send_at = datetime.now(timezone.utc) + timedelta(days=1)

        with patch("mentorhub.notifications.dispatch._scheduler", mock_scheduler):
            provider_id = await dispatch.submit(MESSAGE, send_at, job_id="job-1")

        assert provider_id.startswith("email_")
        call_kwargs = mock_scheduler.add_job.call_args[1]
        assert call_kwargs["id"] == provider_id
        assert call_kwargs["trigger"] == "date"
        assert call_kwargs["run_date"] == send_at
        assert call_kwargs["kwargs"] == {
            "job_id": "job-1",
            "to_email": "alice@example.com",
            "subject": "Hi",
            "body": "Body",
        }

    @pytest.mark.asyncio
    async def test_each_submission_gets_a_new_id(self):
        with patch("mentorhub.notifications.dispatch._scheduler", MagicMock()):
            first = await dispatch.submit(MESSAGE, None)
            second = await dispatch.submit(MESSAGE, None)
        assert first != second

    @pytest.mark.asyncio
    async def test_raises_when_not_initialized(self):
        with patch("mentorhub.notifications.dispatch._scheduler", None):
            with pytest.raises(DispatchUnavailableError):
                await dispatch.submit(MESSAGE, None)


class TestCancelAndMove:
    @pytest.mark.asyncio
    async def test_cancel_removes_job(self):
        mock_scheduler = MagicMock()
        with patch("mentorhub.notifications.dispatch._scheduler", mock_scheduler):
            assert await dispatch.cancel("email_abc") is True
        mock_scheduler.remove_job.assert_called_once_with("email_abc")

    @pytest.mark.asyncio
    async def test_cancel_of_already_sent_email_is_not_an_error(self):
        mock_scheduler = MagicMock()
        mock_scheduler.remove_job.side_effect = JobLookupError("email_abc")
        with patch("mentorhub.notifications.dispatch._scheduler", mock_scheduler):
            assert await dispatch.cancel("email_abc") is False

    @pytest.mark.asyncio
    async def test_update_time_of_missing_email(self):
        mock_scheduler = MagicMock()
        mock_scheduler.reschedule_job.side_effect = JobLookupError("email_abc")
        with patch("mentorhub.notifications.dispatch._scheduler", mock_scheduler):
            with pytest.raises(MessageNotFoundError):
                await dispatch.update_time("email_abc", datetime.now(timezone.utc))


class TestDeliverScheduledEmail:
    @pytest.mark.asyncio
    async def test_marks_completed_on_success(self, fake_store):
        fake_store.add(job_id="job-1", last_error="earlier failure", attempts=1)

        with patch("mentorhub.notifications.dispatch.send_email", return_value="sg-1") as mock_send:
            await dispatch.deliver_scheduled_email("job-1", "alice@example.com", "Hi", "Body")

        mock_send.assert_called_once_with(MESSAGE)
        job = fake_store.jobs["job-1"]
        assert job.status == EmailJobStatus.completed
        assert job.last_error is None
        assert job.attempts == 2

    @pytest.mark.asyncio
    async def test_marks_failed_and_reports(self, fake_store):
        fake_store.add(job_id="job-1")
        error = EmailDeliveryError("SendGrid returned 400", status_code=400)

        with patch("mentorhub.notifications.dispatch.send_email", side_effect=error):
            with patch("mentorhub.notifications.dispatch.sentry_sdk") as mock_sentry:
                await dispatch.deliver_scheduled_email("job-1", "alice@example.com", "Hi", "Body")

        job = fake_store.jobs["job-1"]
        assert job.status == EmailJobStatus.failed
        assert job.last_error == "SendGrid returned 400"
        mock_sentry.capture_exception.assert_called_once_with(error)

    @pytest.mark.asyncio
    async def test_skips_cancelled_job(self, fake_store):
        fake_store.add(job_id="job-1", status=EmailJobStatus.cancelled)

        with patch("mentorhub.notifications.dispatch.send_email") as mock_send:
            await dispatch.deliver_scheduled_email("job-1", "alice@example.com", "Hi", "Body")

        mock_send.assert_not_called()
        assert fake_store.jobs["job-1"].status == EmailJobStatus.cancelled

    @pytest.mark.asyncio
    async def test_skips_deleted_job(self, fake_store):
        with patch("mentorhub.notifications.dispatch.send_email") as mock_send:
            await dispatch.deliver_scheduled_email("gone", "alice@example.com", "Hi", "Body")
        mock_send.assert_not_called()

    @pytest.mark.asyncio
    async def test_sends_untracked_when_store_down(self, fake_store):
        fake_store.available = False

        with patch("mentorhub.notifications.dispatch.send_email", return_value=None) as mock_send:
            await dispatch.deliver_scheduled_email("job-1", "alice@example.com", "Hi", "Body")

        mock_send.assert_called_once()

    @pytest.mark.asyncio
    async def test_untracked_email(self, fake_store):
        with patch("mentorhub.notifications.dispatch.send_email", return_value=None) as mock_send:
            await dispatch.deliver_scheduled_email(None, "alice@example.com", "Hi", "Body")
        mock_send.assert_called_once()
        assert fake_store.jobs == {}


class TestSendNow:
    @pytest.mark.asyncio
    async def test_returns_sendgrid_message_id(self):
        with patch("mentorhub.notifications.dispatch.send_email", return_value="sg-123"):
            assert await dispatch.send_now(MESSAGE) == "sg-123"

    @pytest.mark.asyncio
    async def test_generates_id_when_sendgrid_returns_none(self):
        with patch("mentorhub.notifications.dispatch.send_email", return_value=None):
            message_id = await dispatch.send_now(MESSAGE)
        assert message_id.startswith("email_")

    @pytest.mark.asyncio
    async def test_timed_out_send_is_not_repeated(self):
        with patch(
            "mentorhub.notifications.dispatch.send_email", side_effect=TimeoutError()
        ) as mock_send:
            with patch("mentorhub.notifications.throttle.get_retry_delay", return_value=0):
                with pytest.raises(TimeoutError):
                    await dispatch.send_now(MESSAGE)
        assert mock_send.call_count == 1


class TestDeliveryTimeouts:
    @pytest.mark.asyncio
    async def test_timed_out_delivery_is_not_repeated(self, fake_store):
        fake_store.add(job_id="job-1")

        with patch(
            "mentorhub.notifications.dispatch.send_email", side_effect=TimeoutError("slow")
        ) as mock_send:
            with patch("mentorhub.notifications.throttle.get_retry_delay", return_value=0):
                with patch("mentorhub.notifications.dispatch.sentry_sdk"):
                    await dispatch.deliver_scheduled_email(
                        "job-1", "alice@example.com", "Hi", "Body"
                    )

        assert mock_send.call_count == 1
        assert fake_store.jobs["job-1"].status == EmailJobStatus.failed
