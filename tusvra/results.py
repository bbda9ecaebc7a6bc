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

"""Public API return types for tus-vra-uploader.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Example:
    Using result types:
        ```python
        from tusvra.core import run
        from tusvra.results import RunResult

        result: RunResult = run(config)
        print(result.session_url)
        if result.import_result:
            print(result.import_result.provider_name)
        ```
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ImportResult:
    """Result from importing an uploaded bundle into vRA.

    Attributes:
        bundle_id: Identifier taken from the upload session URL.
        provider_name: providerName reported by vRA.
        provider_version: providerVersion reported by vRA.
    """

    bundle_id: str
    provider_name: str
    provider_version: str


@dataclass(frozen=True)
class RunResult:
    """Result from one upload (and optional import) run.

    Attributes:
        source: Path of the uploaded file.
        session_url: Server-assigned TUS upload URL.
        bytes_uploaded: Size of the uploaded file.
        attempts: Upload attempts used.
        import_result: Import outcome, or None when no import ran.
        status: Always "success" for a completed run.
    """

    source: str
    session_url: str
    bytes_uploaded: int
    attempts: int
    import_result: ImportResult | None
    status: str
