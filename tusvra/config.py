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

"""Run configuration for tus-vra-uploader.

All inputs of one invocation are collected into an immutable RunConfig that
is handed to the orchestrator. Values come from four layers, highest
precedence first:

1. Command-line flags (and the two positional arguments)
2. The optional YAML file given with --config
3. Environment variables (BEARER_TOKEN, URL, FILE, VRA_PASSWORD), with a
   local .env file loaded first
4. Built-in defaults

Example:
    Building a config programmatically:
        ```python
        from tusvra.config import RunConfig

        config = RunConfig(
            source="plugin.zip",
            target="https://vra.example/provisioning/ipam/api/providers/packages/import",
            vra_username="admin",
            vra_password="secret",
        )
        assert config.import_enabled
        ```
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv
import yaml

from tusvra.exceptions import ConfigError, FlagValidationError

# go-tus style defaults: 2 MiB chunks, 50 attempts, 10 s between attempts.
DEFAULT_CHUNK_SIZE = 2 * 1024 * 1024
DEFAULT_MAX_ATTEMPTS = 50
DEFAULT_RETRY_DELAY = 10.0

ENV_BEARER_TOKEN = "BEARER_TOKEN"
ENV_URL = "URL"
ENV_FILE = "FILE"
ENV_VRA_PASSWORD = "VRA_PASSWORD"

_TOP_LEVEL_KEYS = {
    "source",
    "target",
    "headers",
    "skip_ssl_verification",
    "vra_username",
    "vra_password",
    "vra_import",
    "verbose",
    "upload",
}
_UPLOAD_KEYS = {"chunk_size", "max_attempts", "retry_delay"}


@dataclass(frozen=True)
class RunConfig:
    """Everything one upload/import run needs.

    Attributes:
        source: Path of the file to upload.
        target: TUS endpoint URL, also used as the vRA import endpoint.
        headers: Extra HTTP headers sent with every request.
        skip_tls_verification: Disable TLS certificate validation.
        vra_username: vRA user to log in as (enables the import).
        vra_password: Password for vra_username.
        bearer_token: Pre-supplied token; when set no login happens.
        vra_import: Import the uploaded bundle into vRA.
        verbose: Print verbose status output.
        debug: Print debug output (implies verbose).
        chunk_size: Bytes sent per PATCH request.
        max_attempts: Upload attempt budget.
        retry_delay: Seconds to wait between attempts.
    """

    source: str
    target: str
    headers: dict[str, str] = field(default_factory=dict)
    skip_tls_verification: bool = False
    vra_username: str = ""
    vra_password: str = ""
    bearer_token: str = ""
    vra_import: bool = False
    verbose: bool = True
    debug: bool = False
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY

    @property
    def import_enabled(self) -> bool:
        """True when an import was requested; a username always requests one."""
        return self.vra_import or bool(self.vra_username)


def parse_header(raw: str) -> tuple[str, str]:
    """Split a 'Name: Value' string on its first colon.

    Everything after the first colon belongs to the value, so values that
    contain colons themselves (URLs, timestamps) survive intact.

    Raises:
        FlagValidationError: If there is no colon or the name is empty.
    """
    name, sep, value = raw.partition(":")
    name = name.strip()
    if not sep or not name:
        raise FlagValidationError(
            f"Invalid header value '{raw}'. It must have a header-name:value "
            "separated by a colon"
        )
    return name, value.strip()


def parse_headers(values: Iterable[str] | Mapping[str, Any] | None) -> dict[str, str]:
    """Parse repeated --header values (or a YAML mapping) into a dict."""
    if not values:
        return {}
    if isinstance(values, Mapping):
        return {str(k).strip(): str(v).strip() for k, v in values.items()}
    headers: dict[str, str] = {}
    for raw in values:
        name, value = parse_header(str(raw))
        headers[name] = value
    return headers


def load_env_defaults(dotenv_path: Path | None = None) -> dict[str, str]:
    """Read the environment fallbacks once, loading a .env file first.

    Variables already present in the environment win over the .env file.

    Returns:
        Mapping with the keys bearer_token, target, source and vra_password
        for every variable that is set and non-empty.
    """
    load_dotenv(dotenv_path=dotenv_path or find_dotenv(usecwd=True))
    mapping = {
        "bearer_token": ENV_BEARER_TOKEN,
        "target": ENV_URL,
        "source": ENV_FILE,
        "vra_password": ENV_VRA_PASSWORD,
    }
    defaults: dict[str, str] = {}
    for key, env_name in mapping.items():
        value = os.getenv(env_name)
        if value:
            defaults[key] = value
    return defaults


def load_config_file(path: Path) -> dict[str, Any]:
    """Load and validate a YAML defaults file.

    Args:
        path: Path to the YAML file.

    Returns:
        Flat mapping of RunConfig field names to values. Keys of the nested
        'upload' section are hoisted to the top level.

    Raises:
        ConfigError: If the file is missing, not valid YAML, not a mapping,
            or contains unknown keys.
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as err:
        raise ConfigError(f"Config file not found: {path}") from err
    except OSError as err:
        raise ConfigError(f"Cannot read config file {path}: {err}") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"Failed to parse YAML in {path}: {err}") from err

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at top level")

    unknown = set(data) - _TOP_LEVEL_KEYS
    if unknown:
        raise ConfigError(
            f"Unknown key(s) in {path}: {', '.join(sorted(unknown))}"
        )

    values = {k: v for k, v in data.items() if k != "upload"}
    upload = data.get("upload") or {}
    if not isinstance(upload, dict):
        raise ConfigError(f"'upload' in {path} must be a mapping")
    unknown = set(upload) - _UPLOAD_KEYS
    if unknown:
        raise ConfigError(
            f"Unknown key(s) in upload section of {path}: "
            f"{', '.join(sorted(unknown))}"
        )
    values.update(upload)

    if "skip_ssl_verification" in values:
        values["skip_tls_verification"] = values.pop("skip_ssl_verification")
    if "headers" in values:
        headers = values["headers"]
        if not isinstance(headers, (dict, list)):
            raise ConfigError(f"'headers' in {path} must be a mapping or a list")
        values["headers"] = parse_headers(headers)
    return values


def _first(*candidates: Any, default: Any = None) -> Any:
    for candidate in candidates:
        if candidate is not None and candidate != "":
            return candidate
    return default


def build_run_config(
    cli_values: Mapping[str, Any],
    positionals: Iterable[str] = (),
    file_values: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> RunConfig:
    """Merge the configuration layers into a RunConfig.

    Args:
        cli_values: Values from argparse; None means "not given".
        positionals: Extra command-line arguments. The first two fill an
            unset source and then an unset target.
        file_values: Values from load_config_file().
        env: Values from load_env_defaults().

    Raises:
        FlagValidationError: If no source or target could be resolved.
        ConfigError: If a numeric setting has an invalid value, or a
            boolean setting is not a real boolean.
    """
    file_values = file_values or {}
    env = env or {}

    def pick(key: str, default: Any = None) -> Any:
        return _first(
            cli_values.get(key), file_values.get(key), env.get(key), default=default
        )

    def flag(key: str, default: bool) -> bool:
        value = pick(key, default)
        if not isinstance(value, bool):
            raise ConfigError(
                f"{key} must be true or false, got {value!r} ({type(value).__name__})"
            )
        return value

    source = _first(cli_values.get("source"))
    target = _first(cli_values.get("target"))
    for arg in positionals:
        if not source:
            source = arg
        elif not target:
            target = arg
    source = _first(source, file_values.get("source"), env.get("source"))
    target = _first(target, file_values.get("target"), env.get("target"))

    if not source:
        raise FlagValidationError(
            "No source file given. Use --source, a positional argument, or FILE"
        )
    if not target:
        raise FlagValidationError(
            "No target URL given. Use --target, a positional argument, or URL"
        )

    headers = dict(file_values.get("headers") or {})
    headers.update(parse_headers(cli_values.get("headers")))

    try:
        chunk_size = int(pick("chunk_size", DEFAULT_CHUNK_SIZE))
        max_attempts = int(pick("max_attempts", DEFAULT_MAX_ATTEMPTS))
        retry_delay = float(pick("retry_delay", DEFAULT_RETRY_DELAY))
    except (TypeError, ValueError) as err:
        raise ConfigError(f"Invalid upload setting: {err}") from err
    if chunk_size <= 0:
        raise ConfigError(f"chunk_size must be positive, got {chunk_size}")
    if max_attempts <= 0:
        raise ConfigError(f"max_attempts must be positive, got {max_attempts}")
    if retry_delay < 0:
        raise ConfigError(f"retry_delay must not be negative, got {retry_delay}")

    return RunConfig(
        source=str(source),
        target=str(target),
        headers=headers,
        skip_tls_verification=flag("skip_tls_verification", False),
        vra_username=str(pick("vra_username", "")),
        vra_password=str(pick("vra_password", "")),
        bearer_token=str(pick("bearer_token", "")),
        vra_import=flag("vra_import", False),
        verbose=flag("verbose", True),
        debug=flag("debug", False),
        chunk_size=chunk_size,
        max_attempts=max_attempts,
        retry_delay=retry_delay,
    )
