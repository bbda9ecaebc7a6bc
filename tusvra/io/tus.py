"""
TUS client adapter for tus-vra-uploader.

The TUS wire protocol itself (POST to create, HEAD to read the offset,
PATCH to send bytes) is provided by the tuspy distribution (import name
``tusclient``). This module wraps it behind the two small operations the
upload engine needs:

- TusTransport.open(): create a new upload, or resume an existing one when
  a session URL is already known.
- TusTransfer.run(): send the remaining bytes chunk by chunk, reporting the
  acknowledged offset after every chunk.

Every tusclient or requests failure, as well as a malformed server reply
or a failed read of the source stream, is re-raised as
TransientUploadError carrying the HTTP status (when there was one). Deciding whether a failure
is worth retrying is left to the engine's RetryPolicy.

tusclient's own retry loop is disabled (retries=0); the engine owns the
retry budget.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, BinaryIO

import requests
from tusclient.client import TusClient
from tusclient.exceptions import TusCommunicationError

if TYPE_CHECKING:
    from tusclient.uploader import Uploader

from tusvra.exceptions import TransientUploadError

ProgressCallback = Callable[[int, int], None]

# tusclient parses Upload-Offset/Location with int() and reads the stream
# directly, so malformed responses and read failures surface as builtins.
_TUS_ERRORS = (
    TusCommunicationError,
    requests.RequestException,
    TypeError,
    ValueError,
    OSError,
)


def _as_upload_error(err: Exception, action: str) -> TransientUploadError:
    status = getattr(err, "status_code", None)
    detail = str(err)
    content = getattr(err, "response_content", None)
    if content:
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="replace")
        detail = f"{detail}: {content}"
    if status is not None:
        return TransientUploadError(
            f"{action} failed with status {status}: {detail}", status_code=status
        )
    return TransientUploadError(f"{action} failed: {detail}")


class TusTransfer:
    """One opened TUS upload, ready to send bytes."""

    def __init__(self, uploader: Uploader) -> None:
        self._uploader = uploader

    @property
    def url(self) -> str:
        return self._uploader.url

    @property
    def offset(self) -> int:
        return self._uploader.offset

    @property
    def size(self) -> int:
        return self._uploader.get_file_size()

    def run(self, on_progress: ProgressCallback | None = None) -> None:
        """PATCH the remaining bytes until the server holds the whole file.

        Args:
            on_progress: Called with (offset, size) after every acknowledged
                chunk.

        Raises:
            TransientUploadError: If any chunk fails.
        """
        size = self.size
        try:
            while self._uploader.offset < size:
                self._uploader.upload_chunk()
                if on_progress is not None:
                    on_progress(self._uploader.offset, size)
        except _TUS_ERRORS as err:
            raise _as_upload_error(err, "Transfer") from err


class TusTransport:
    """Factory of TusTransfer objects for a single TUS endpoint."""

    def __init__(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        *,
        verify_tls: bool = True,
        chunk_size: int,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        self.url = url
        self.headers = headers if headers is not None else {}
        self.verify_tls = verify_tls
        self.chunk_size = chunk_size
        self.metadata = dict(metadata or {})

    def open(self, stream: BinaryIO, session_url: str | None = None) -> TusTransfer:
        """Create a new upload, or resume the one at session_url.

        Raises:
            TransientUploadError: If the create (POST) or offset lookup
                (HEAD) fails. status_code is set when the server answered.
        """
        # Headers are read at call time so a token set after construction
        # is still sent.
        client = TusClient(self.url, headers=dict(self.headers))
        action = "Resume" if session_url else "Create"
        try:
            uploader = client.uploader(
                file_stream=stream,
                url=session_url,
                chunk_size=self.chunk_size,
                metadata=self.metadata,
                retries=0,
                verify_tls_cert=self.verify_tls,
            )
            if not session_url:
                uploader.set_url(uploader.create_url())
                uploader.offset = 0
        except _TUS_ERRORS as err:
            raise _as_upload_error(err, action) from err
        return TusTransfer(uploader)
