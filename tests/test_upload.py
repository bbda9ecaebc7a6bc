"""
Tests for tusvra.io.upload module.

Tests the resumable upload engine including:
- Success on the first attempt
- First-attempt unrecoverable statuses
- Transient retry with fixed backoff
- Attempt budget exhaustion
- Session URL reuse across attempts
- Progress offsets
"""

from __future__ import annotations

import io

import pytest

from conftest import SESSION_URL, FakeTransfer, FakeTransport, transient
from tusvra.exceptions import ConfigError, TransientUploadError, UnrecoverableUploadError
from tusvra.io.upload import (
    AttemptState,
    ResumableUploadEngine,
    RetryPolicy,
    UploadSession,
)
from tusvra.logging import SilentLogger
from tusvra.progress import ProgressChannel, ProgressReporter


def _session(size: int = 10) -> UploadSession:
    return UploadSession.from_stream(io.BytesIO(b"x" * size))


def _engine(transport, fake_sleep, **policy) -> ResumableUploadEngine:
    return ResumableUploadEngine(
        transport, RetryPolicy(**policy), logger=SilentLogger(), sleep=fake_sleep
    )


class TestUploadSession:
    """Tests for UploadSession bookkeeping."""

    def test_from_stream_measures_size_and_rewinds(self):
        stream = io.BytesIO(b"abcdef")
        stream.seek(3)
        session = UploadSession.from_stream(stream)
        assert session.size == 6
        assert stream.tell() == 0
        assert session.url is None
        assert session.offset == 0

    def test_offset_never_decreases(self):
        session = _session()
        assert session.advance(8) is True
        assert session.advance(4) is False
        assert session.offset == 8

    def test_offset_beyond_size_is_rejected(self):
        session = _session()
        with pytest.raises(TransientUploadError, match="beyond file size"):
            session.advance(11)

    def test_url_is_assigned_once(self):
        session = _session()
        session.assign_url("https://host/files/a")
        session.assign_url("https://host/files/b")
        assert session.url == "https://host/files/a"


class TestRetryPolicy:
    """Tests for failure classification."""

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    def test_first_create_with_client_error_is_unrecoverable(self, status):
        policy = RetryPolicy()
        err = transient(status)
        assert policy.is_unrecoverable(1, AttemptState.CREATE_OR_RESUME, err)

    def test_later_attempts_are_always_transient(self):
        policy = RetryPolicy()
        assert not policy.is_unrecoverable(
            2, AttemptState.CREATE_OR_RESUME, transient(401)
        )

    def test_transfer_failures_are_always_transient(self):
        policy = RetryPolicy()
        assert not policy.is_unrecoverable(1, AttemptState.TRANSFERRING, transient(404))

    def test_server_errors_are_transient(self):
        policy = RetryPolicy()
        assert not policy.is_unrecoverable(
            1, AttemptState.CREATE_OR_RESUME, transient(500)
        )
        assert not policy.is_unrecoverable(
            1, AttemptState.CREATE_OR_RESUME, transient(None)
        )

    @pytest.mark.parametrize(
        "values", [{"max_attempts": 0}, {"max_attempts": -3}, {"backoff_seconds": -1}]
    )
    def test_invalid_budget_rejected(self, values):
        with pytest.raises(ConfigError):
            RetryPolicy(**values)

    def test_single_attempt_raises_its_error(self, fake_sleep, sleeps):
        error = transient(502)
        engine = _engine(FakeTransport([error]), fake_sleep, max_attempts=1)

        with pytest.raises(TransientUploadError) as excinfo:
            engine.upload(_session())

        assert excinfo.value is error
        assert sleeps == []


class TestResumableUploadEngine:
    """Tests for the bounded retry loop."""

    def test_success_on_first_attempt(self, fake_sleep, sleeps):
        transport = FakeTransport([FakeTransfer()])
        engine = _engine(transport, fake_sleep)
        session = _session()

        url = engine.upload(session)

        assert url == SESSION_URL
        assert session.url == SESSION_URL
        assert session.offset == 10
        assert engine.attempts == 1
        assert sleeps == []

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    def test_first_attempt_client_error_aborts(self, fake_sleep, sleeps, status):
        transport = FakeTransport([transient(status), FakeTransfer()])
        engine = _engine(transport, fake_sleep)

        with pytest.raises(UnrecoverableUploadError) as excinfo:
            engine.upload(_session())

        assert excinfo.value.status_code == status
        assert transport.calls == [None]
        assert engine.attempts == 1
        assert sleeps == []

    def test_first_create_500_then_success(self, fake_sleep, sleeps):
        transport = FakeTransport([transient(500), FakeTransfer()])
        engine = _engine(transport, fake_sleep)

        url = engine.upload(_session())

        assert url == SESSION_URL
        assert engine.attempts == 2
        assert sleeps == [10.0]

    def test_client_error_on_second_attempt_is_retried(self, fake_sleep, sleeps):
        transport = FakeTransport([transient(503), transient(401), FakeTransfer()])
        engine = _engine(transport, fake_sleep)

        assert engine.upload(_session()) == SESSION_URL
        assert engine.attempts == 3
        assert sleeps == [10.0, 10.0]

    def test_transfer_failure_with_404_is_retried(self, fake_sleep, sleeps):
        failing = FakeTransfer(fail_at=4, error=transient(404))
        transport = FakeTransport([failing, FakeTransfer(start=4)])
        engine = _engine(transport, fake_sleep)

        assert engine.upload(_session()) == SESSION_URL
        assert engine.attempts == 2
        assert sleeps == [10.0]

    def test_budget_exhaustion_raises_last_error(self, fake_sleep, sleeps):
        errors = [transient(500, f"failure {i}") for i in range(1, 51)]
        transport = FakeTransport(errors)
        engine = _engine(transport, fake_sleep)

        with pytest.raises(TransientUploadError, match="failure 50"):
            engine.upload(_session())

        assert len(transport.calls) == 50
        assert engine.attempts == 50
        # No pause after the final attempt.
        assert sleeps == [10.0] * 49

    def test_custom_budget_and_backoff(self, fake_sleep, sleeps):
        transport = FakeTransport([transient(502)] * 3)
        engine = _engine(transport, fake_sleep, max_attempts=3, backoff_seconds=0.5)

        with pytest.raises(TransientUploadError):
            engine.upload(_session())

        assert len(transport.calls) == 3
        assert sleeps == [0.5, 0.5]

    def test_session_url_reused_after_create(self, fake_sleep):
        first = FakeTransfer(fail_at=4)
        transport = FakeTransport([first, transient(500), FakeTransfer(start=8)])
        engine = _engine(transport, fake_sleep)

        engine.upload(_session())

        assert transport.calls == [None, SESSION_URL, SESSION_URL]

    def test_failed_create_does_not_assign_url(self, fake_sleep):
        transport = FakeTransport([transient(500), transient(500), FakeTransfer()])
        engine = _engine(transport, fake_sleep)

        engine.upload(_session())

        assert transport.calls == [None, None, None]

    def test_progress_offsets_are_non_decreasing(self, fake_sleep):
        # Second attempt resumes from a lower offset than was acknowledged.
        transport = FakeTransport(
            [FakeTransfer(fail_at=8, chunk=4), FakeTransfer(start=4, chunk=2)]
        )
        engine = _engine(transport, fake_sleep)
        seen = []
        channel = ProgressChannel()

        with ProgressReporter(channel, sink=seen.append, logger=SilentLogger()):
            engine.upload(_session(), channel)

        offsets = [event.offset for event in seen]
        assert offsets == sorted(offsets)
        assert seen[-1].offset == 10
        assert seen[-1].percentage == 100
