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

"""Command-line interface for tus-vra-uploader.

Streams a file to a TUS server and, for vRA targets, imports the uploaded
bundle.

Example:
    Upload and import into vRA:
        ```bash
        $ tus-vra-uploader --vra-username=admin --vra-password=XXX \\
            Infoblox.zip https://vrahost/provisioning/ipam/api/providers/packages/import
        ```

    Plain TUS upload with an extra header:
        ```bash
        $ tus-vra-uploader --source big.iso --target https://tus.example/files/ \\
            --header "X-Team: infra"
        ```

Environment:

- BEARER_TOKEN: Pre-supplied token (skips the vRA login)
- URL: Default target URL
- FILE: Default source file
- VRA_PASSWORD: Default vRA password

Exit Codes:

- 0: Success
- 1: Error (bad flags, login, upload or import failure)

Note:
    The CLI uses argparse for command parsing (stdlib, zero dependencies).
    Debug mode prints full tracebacks on errors.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path
import sys

from tusvra import __version__
from tusvra.config import build_run_config, load_config_file, load_env_defaults
from tusvra.core import run
from tusvra.exceptions import ConfigError, TusVraError
from tusvra.logging import get_logger, set_global_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tus-vra-uploader",
        description="TUS Uploader streams a file to a target URL.",
        epilog=(
            "example: tus-vra-uploader --vra-username=admin --vra-password=XXX "
            "Infoblox.zip https://vrahost/provisioning/ipam/api/providers/packages/import"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"tus-vra-uploader {__version__}",
    )
    parser.add_argument(
        "args",
        nargs="*",
        metavar="SOURCE TARGET",
        help="Source file and target URL when --source/--target are not given",
    )
    parser.add_argument("--source", default=None, help="path to the file to upload")
    parser.add_argument("--target", default=None, help="url to upload to")
    parser.add_argument(
        "--header",
        dest="headers",
        action="append",
        default=None,
        help="Extra header, repeatable. eg: 'Authorization: Bearer XXX'",
    )
    parser.add_argument(
        "--skip-ssl-verification",
        dest="skip_tls_verification",
        action="store_true",
        default=None,
        help="Skip the validation of the TLS certificates",
    )
    parser.add_argument("--vra-username", default=None, help="vRA username")
    parser.add_argument("--vra-password", default=None, help="vRA password")
    parser.add_argument(
        "--vra-import",
        action="store_true",
        default=None,
        help="Import the bundle into vRA (implied by --vra-username)",
    )
    parser.add_argument(
        "--verbose",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Show detailed status output (default: on)",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        default=None,
        help="Show debugging output and tracebacks (implies --verbose)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file with default settings",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Bytes sent per PATCH request (default: 2 MiB)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the tus-vra-uploader CLI.

    Returns:
        Process exit code. The console script wrapper passes it to sys.exit.
    """
    parser = build_parser()
    args = parser.parse_intermixed_args(argv)

    # Until the config is resolved, errors are reported by a plain logger.
    logger = get_logger(verbose=False, debug=bool(args.debug))
    set_global_logger(logger)

    try:
        env = load_env_defaults()
        file_values = load_config_file(args.config) if args.config else {}
        cli_values = {
            key: getattr(args, key)
            for key in (
                "source",
                "target",
                "headers",
                "skip_tls_verification",
                "vra_username",
                "vra_password",
                "vra_import",
                "verbose",
                "debug",
                "chunk_size",
            )
        }
        config = build_run_config(cli_values, args.args, file_values, env)
    except ConfigError as err:
        logger.error(str(err))
        return 1

    logger = get_logger(verbose=config.verbose, debug=config.debug)
    set_global_logger(logger)

    try:
        result = run(config, logger=logger)
    except TusVraError as err:
        logger.error(str(err))
        if config.debug:
            import traceback

            traceback.print_exc()
        return 1

    logger.verbose("RESULT", f"Session URL: {result.session_url}")
    logger.verbose("RESULT", f"Attempts: {result.attempts}")
    return 0


def console_main() -> None:
    """Console script entry point registered in pyproject.toml."""
    sys.exit(main())


if __name__ == "__main__":
    console_main()
