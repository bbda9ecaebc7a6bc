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

"""Exception hierarchy for tus-vra-uploader.

This module defines the error taxonomy shared by the CLI, the orchestrator
and the individual components:

- ConfigError: Configuration-related errors (YAML parse, bad values)
- FlagValidationError: Malformed command-line input (headers, missing args)
- FileAccessError: The source file cannot be opened
- AuthenticationError: vRA login failed
- MalformedResponseError: A JSON response lacks an expected field
- UploadError: Resumable upload failures (transient or unrecoverable)
- BundleImportError: The vRA bundle import call failed

All exceptions inherit from TusVraError, allowing callers to catch every
tool error with a single except clause.

Example:
    Catching specific error types:
        ```python
        from tusvra.core import run
        from tusvra.exceptions import AuthenticationError, UploadError

        try:
            result = run(config)
        except AuthenticationError as e:
            print(f"Login failed: {e}")
        except UploadError as e:
            print(f"Upload failed: {e}")
        ```
"""

from __future__ import annotations

__all__ = [
    "TusVraError",
    "ConfigError",
    "FlagValidationError",
    "FileAccessError",
    "AuthenticationError",
    "MalformedResponseError",
    "UploadError",
    "TransientUploadError",
    "UnrecoverableUploadError",
    "BundleImportError",
]


class TusVraError(Exception):
    """Base exception for all tus-vra-uploader errors."""

    pass


class ConfigError(TusVraError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - YAML parsing of the --config file
    - Unknown keys or values of the wrong type in the config file
    """

    pass


class FlagValidationError(ConfigError):
    """Raised for malformed command-line input.

    Examples are a --header value without a colon or a run without a
    source file or target URL.
    """

    pass


class FileAccessError(TusVraError):
    """Raised when the source file cannot be opened for reading."""

    pass


class AuthenticationError(TusVraError):
    """Raised when the vRA login call does not return HTTP 200.

    Attributes:
        status_code: HTTP status of the login response, or None when no
            response was received.
        body: Response body kept as diagnostic text.
    """

    def __init__(
        self, message: str, status_code: int | None = None, body: str = ""
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MalformedResponseError(TusVraError):
    """Raised when a JSON response is missing an expected field."""

    pass


class UploadError(TusVraError):
    """Base class for resumable upload failures.

    Attributes:
        status_code: HTTP status surfaced by the failing TUS request, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientUploadError(UploadError):
    """Network or server error during create/resume or transfer.

    These are retried by the upload engine until its attempt budget is spent.
    """

    pass


class UnrecoverableUploadError(UploadError):
    """HTTP 400/401/403/404 on the very first create/resume attempt."""

    pass


class BundleImportError(TusVraError):
    """Raised when the vRA import call does not return HTTP 201.

    Attributes:
        status_code: HTTP status of the import response, or None when the
            request failed before a response was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
