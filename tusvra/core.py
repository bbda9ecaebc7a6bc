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

"""Core orchestration for tus-vra-uploader.

This module sequences one run of the tool:

1. Build the transport config (extra headers, TLS toggle).
2. Open the source file; it stays open until the run ends.
3. Resolve identity: a pre-supplied bearer token is used as is; otherwise a
   vRA username triggers a login; otherwise the upload is anonymous.
4. Upload the file through the resumable upload engine while a background
   thread prints progress.
5. If an import was requested and a token is present, import the bundle.

Any unrecovered error stops the run at that point and propagates to the
caller. An upload failure therefore skips the import, and an import failure
leaves the uploaded bundle in place.

Design Principles:

- Every input arrives through RunConfig; nothing is read from the
  environment here
- Error handling uses exceptions; the CLI layer formats them for display
- Collaborators (TUS transport, sleep) are injectable for testing

Example:
    Programmatic usage:
        ```python
        from tusvra.config import RunConfig
        from tusvra.core import run

        result = run(
            RunConfig(
                source="Infoblox.zip",
                target="https://vrahost/provisioning/ipam/api/providers/packages/import",
                vra_username="admin",
                vra_password="secret",
            )
        )
        print(result.import_result.provider_version)
        ```
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import time

from tusvra.auth import acquire_token
from tusvra.config import RunConfig
from tusvra.exceptions import FileAccessError
from tusvra.io.transport import TransportConfig
from tusvra.io.tus import TusTransport
from tusvra.io.upload import (
    ResumableUploadEngine,
    RetryPolicy,
    Transport,
    UploadSession,
)
from tusvra.logging import Logger, get_global_logger
from tusvra.progress import ProgressChannel, ProgressReporter
from tusvra.results import ImportResult, RunResult
from tusvra.vra import import_bundle

TransportFactory = Callable[[RunConfig, TransportConfig], Transport]


def make_tus_transport(config: RunConfig, transport: TransportConfig) -> TusTransport:
    """Build the TUS adapter sharing the run's headers and TLS settings."""
    return TusTransport(
        config.target,
        transport.headers,
        verify_tls=transport.verify_tls,
        chunk_size=config.chunk_size,
        metadata={"filename": Path(config.source).name},
    )


def resolve_token(
    config: RunConfig, transport: TransportConfig, logger: Logger
) -> str:
    """Return the bearer token for this run, or "" for an anonymous run.

    A pre-supplied token always wins and no login call is made.
    """
    if config.bearer_token:
        logger.verbose("AUTH", "Using the pre-supplied bearer token")
        return config.bearer_token
    if config.vra_username:
        return acquire_token(
            transport.session,
            config.target,
            config.vra_username,
            config.vra_password,
            logger=logger,
        )
    logger.verbose("AUTH", "No credentials given, uploading unauthenticated")
    return ""


def run(
    config: RunConfig,
    *,
    logger: Logger | None = None,
    transport_factory: TransportFactory = make_tus_transport,
    sleep: Callable[[float], None] = time.sleep,
) -> RunResult:
    """Upload config.source to config.target and optionally import it.

    Args:
        config: Fully resolved run configuration.
        logger: Optional logger; defaults to the global logger.
        transport_factory: Builds the TUS transport from the config.
        sleep: Used for the backoff between upload attempts.

    Returns:
        RunResult describing the upload and the import, if one ran.

    Raises:
        FileAccessError: The source file cannot be opened.
        AuthenticationError: The vRA login failed.
        MalformedResponseError: A vRA response lacked an expected field.
        UploadError: The upload could not be completed.
        BundleImportError: The import call failed.
    """
    logger = logger if logger is not None else get_global_logger()
    total_steps = 3 if config.import_enabled else 2

    transport = TransportConfig.build(
        config.headers, verify_tls=not config.skip_tls_verification
    )
    try:
        try:
            stream = open(config.source, "rb")
        except OSError as err:
            raise FileAccessError(
                f"Cannot open source file {config.source}: {err}"
            ) from err

        with stream:
            logger.info(f"TUS Uploading {config.source} to {config.target}")

            logger.step(1, total_steps, "Resolving identity...")
            token = resolve_token(config, transport, logger)
            if token:
                transport.set_bearer_token(token)

            logger.step(2, total_steps, "Uploading...")
            session = UploadSession.from_stream(stream)
            engine = ResumableUploadEngine(
                transport_factory(config, transport),
                RetryPolicy(
                    max_attempts=config.max_attempts,
                    backoff_seconds=config.retry_delay,
                ),
                logger=logger,
                sleep=sleep,
            )
            with ProgressReporter(ProgressChannel(), logger=logger) as reporter:
                session_url = engine.upload(session, reporter.channel)
        logger.info("Done uploading")

        import_result: ImportResult | None = None
        if config.import_enabled:
            logger.step(3, total_steps, "Importing bundle...")
            if token:
                import_result = import_bundle(
                    transport.session,
                    token,
                    config.target,
                    session_url,
                    logger=logger,
                )
                logger.info(
                    "Bundle imported into VRA: "
                    f"{import_result.provider_name} {import_result.provider_version}"
                )
            else:
                logger.warning("Skipping the vRA import: no bearer token available")

        return RunResult(
            source=config.source,
            session_url=session_url,
            bytes_uploaded=session.size,
            attempts=engine.attempts,
            import_result=import_result,
            status="success",
        )
    finally:
        transport.close()
