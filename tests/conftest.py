"""
Pytest configuration and shared fixtures for tus-vra-uploader tests.

This module provides reusable fixtures and in-memory fakes of the TUS
transport so the upload engine and orchestrator can be tested without a
server or real sleeps.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tusvra.exceptions import TransientUploadError

VRA_HOST = "https://vra.example"
IMPORT_URL = f"{VRA_HOST}/provisioning/ipam/api/providers/packages/import"
LOGIN_URL = f"{VRA_HOST}/csp/gateway/am/api/login?access_token"
SESSION_URL = f"{VRA_HOST}/provisioning/ipam/api/providers/packages/import/files/abc123"


class FakeTransfer:
    """Transfer that acknowledges `chunk` bytes per step.

    If fail_at is set, run() raises `error` once the offset reaches it.
    """

    def __init__(
        self,
        url: str = SESSION_URL,
        size: int = 10,
        *,
        start: int = 0,
        chunk: int = 4,
        fail_at: int | None = None,
        error: Exception | None = None,
    ) -> None:
        self.url = url
        self.size = size
        self.offset = start
        self.chunk = chunk
        self.fail_at = fail_at
        self.error = error or TransientUploadError("connection reset", 500)

    def run(self, on_progress=None) -> None:
        while self.offset < self.size:
            if self.fail_at is not None and self.offset >= self.fail_at:
                raise self.error
            self.offset = min(self.offset + self.chunk, self.size)
            if on_progress is not None:
                on_progress(self.offset, self.size)


class FakeTransport:
    """Transport returning scripted outcomes, one per open() call.

    An outcome that is an exception is raised; anything else is returned
    as the transfer. Every session_url passed to open() is recorded.
    """

    def __init__(self, outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[str | None] = []

    def open(self, stream, session_url=None):
        self.calls.append(session_url)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def transient(status: int | None = 500, message: str = "server error"):
    return TransientUploadError(message, status_code=status)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the real environment and any local .env out of every test."""
    for name in ("BEARER_TOKEN", "URL", "FILE", "VRA_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def source_file(tmp_test_dir: Path) -> Path:
    """A 10-byte bundle to upload."""
    path = tmp_test_dir / "plugin.zip"
    path.write_bytes(b"0123456789")
    return path


@pytest.fixture
def sleeps() -> list[float]:
    """Collects backoff delays instead of sleeping."""
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]):
    return sleeps.append
