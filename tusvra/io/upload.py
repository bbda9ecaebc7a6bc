# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Resumable upload engine with a bounded retry budget.

Each attempt runs a small state machine:

    CREATE_OR_RESUME -> TRANSFERRING -> DONE | FAILED

CREATE_OR_RESUME asks the server for a new upload resource, or, once a
session URL is known from an earlier attempt of the same run, resumes that
resource instead. TRANSFERRING sends the remaining bytes and publishes a
ProgressEvent after each acknowledged chunk.

Failure handling is delegated to a RetryPolicy parameterized by the attempt
index:

- A CREATE_OR_RESUME failure on attempt 1 carrying HTTP 400, 401, 403 or
  404 is unrecoverable. The run aborts with UnrecoverableUploadError after
  that single attempt.
- Every other failure, including any TRANSFERRING failure, is transient:
  it is logged, the engine sleeps for the fixed backoff and tries again.
- After max_attempts attempts the last error is raised.

Example:
    ```python
    from tusvra.io.tus import TusTransport
    from tusvra.io.upload import ResumableUploadEngine, RetryPolicy, UploadSession

    transport = TusTransport(url, headers, chunk_size=2 * 1024 * 1024)
    engine = ResumableUploadEngine(transport, RetryPolicy())
    with open("plugin.zip", "rb") as f:
        session_url = engine.upload(UploadSession.from_stream(f))
    ```
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
import os
import time
from typing import BinaryIO, Protocol

from tusvra.config import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_DELAY
from tusvra.exceptions import (
    ConfigError,
    TransientUploadError,
    UnrecoverableUploadError,
    UploadError,
)
from tusvra.logging import Logger, get_global_logger
from tusvra.progress import ProgressChannel, ProgressEvent

UNRECOVERABLE_STATUSES = frozenset({400, 401, 403, 404})


class AttemptState(Enum):
    """States of a single upload attempt."""

    CREATE_OR_RESUME = "create_or_resume"
    TRANSFERRING = "transferring"
    DONE = "done"
    FAILED = "failed"


class Transfer(Protocol):
    """An opened upload resource."""

    @property
    def url(self) -> str: ...

    @property
    def offset(self) -> int: ...

    def run(self, on_progress: Callable[[int, int], None] | None = None) -> None: ...


class Transport(Protocol):
    """Creates or resumes upload resources."""

    def open(self, stream: BinaryIO, session_url: str | None = None) -> Transfer: ...


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget, backoff and failure classification.

    Attributes:
        max_attempts: Total attempts across create/resume and transfer.
        backoff_seconds: Fixed pause between attempts.
        unrecoverable_statuses: HTTP statuses that abort the run when the
            first create/resume attempt fails with them.
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_seconds: float = DEFAULT_RETRY_DELAY
    unrecoverable_statuses: frozenset[int] = field(
        default_factory=lambda: UNRECOVERABLE_STATUSES
    )

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigError(
                f"max_attempts must be at least 1, got {self.max_attempts}"
            )
        if self.backoff_seconds < 0:
            raise ConfigError(
                f"backoff_seconds must not be negative, got {self.backoff_seconds}"
            )

    def is_unrecoverable(
        self, attempt: int, state: AttemptState, error: UploadError
    ) -> bool:
        """Decide whether a failure ends the run without further attempts."""
        return (
            attempt == 1
            and state is AttemptState.CREATE_OR_RESUME
            and error.status_code in self.unrecoverable_statuses
        )

    def has_attempts_left(self, attempt: int) -> bool:
        return attempt < self.max_attempts


@dataclass
class UploadSession:
    """State of one file transfer, shared by every attempt of a run.

    offset is the highest byte count the server has acknowledged. It never
    decreases and never exceeds size. url is assigned by the server on the
    first successful create and reused on every later attempt.
    """

    stream: BinaryIO
    size: int
    url: str | None = None
    offset: int = 0

    @classmethod
    def from_stream(cls, stream: BinaryIO) -> UploadSession:
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)
        return cls(stream=stream, size=size)

    def assign_url(self, url: str) -> None:
        if self.url is None:
            self.url = url

    def advance(self, offset: int) -> bool:
        """Record an acknowledged offset.

        Returns:
            True if the offset moved forward.

        Raises:
            TransientUploadError: If the server reports more bytes than the
                file holds.
        """
        if offset > self.size:
            raise TransientUploadError(
                f"Server reported offset {offset} beyond file size {self.size}"
            )
        if offset <= self.offset:
            return False
        self.offset = offset
        return True

    @property
    def complete(self) -> bool:
        return self.offset >= self.size


class ResumableUploadEngine:
    """Drives an UploadSession to completion within a RetryPolicy budget."""

    def __init__(
        self,
        transport: Transport,
        policy: RetryPolicy | None = None,
        logger: Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport
        self.policy = policy if policy is not None else RetryPolicy()
        self._logger = logger if logger is not None else get_global_logger()
        self._sleep = sleep
        self.attempts = 0

    def upload(
        self, session: UploadSession, channel: ProgressChannel | None = None
    ) -> str:
        """Upload the session's stream, retrying transient failures.

        Args:
            session: The transfer state; its url is filled in on creation.
            channel: Optional channel receiving a ProgressEvent per chunk.

        Returns:
            The server-assigned session URL.

        Raises:
            UnrecoverableUploadError: First create/resume was rejected with
                400/401/403/404.
            TransientUploadError: The attempt budget ran out; this is the
                last error encountered.
        """
        logger = self._logger
        max_attempts = self.policy.max_attempts
        last_error: UploadError | None = None

        def on_progress(offset: int, size: int) -> None:
            if session.advance(offset) and channel is not None:
                channel.publish(ProgressEvent.at(session.offset, session.size))

        for attempt in range(1, max_attempts + 1):
            self.attempts = attempt
            if attempt > 1:
                logger.info(f"Attempt {attempt} of {max_attempts}")

            state = AttemptState.CREATE_OR_RESUME
            try:
                transfer = self.transport.open(session.stream, session.url)
                if session.url is None:
                    session.assign_url(transfer.url)
                    logger.info(f"Starting the upload to {session.url}")
                else:
                    logger.verbose(
                        "TUS", f"Resuming {session.url} at offset {transfer.offset}"
                    )
                session.advance(transfer.offset)

                state = AttemptState.TRANSFERRING
                transfer.run(on_progress)
                state = AttemptState.DONE
            except UploadError as err:
                if self.policy.is_unrecoverable(attempt, state, err):
                    logger.verbose("TUS", f"Unrecoverable failure: {err}")
                    raise UnrecoverableUploadError(
                        str(err), status_code=err.status_code
                    ) from err
                state = AttemptState.FAILED
                last_error = err
                logger.warning(f"Error {err}")
                if self.policy.has_attempts_left(attempt):
                    delay = self.policy.backoff_seconds
                    logger.info(f"Trying again in {delay:g} seconds")
                    self._sleep(delay)
                continue

            logger.debug("TUS", f"Attempt {attempt} finished in state {state.value}")
            return session.url  # type: ignore[return-value]

        # max_attempts >= 1, so every path through the loop set last_error.
        raise last_error  # type: ignore[misc]
