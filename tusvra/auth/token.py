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

"""vRA bearer token acquisition.

Exchanges a username and password for an access token through the CSP
gateway login endpoint of the vRA host that also serves the upload target.
The token is not cached: each run logs in at most once.
"""

from __future__ import annotations

from urllib.parse import urlparse

import requests

from tusvra.exceptions import AuthenticationError, MalformedResponseError
from tusvra.logging import Logger, get_global_logger

CSP_LOGIN_PATH = "/csp/gateway/am/api/login?access_token"


def login_url_for(target_url: str) -> str:
    """Derive the login endpoint from the scheme and host of target_url.

    Example:
        ```python
        login_url_for("https://vra.example/provisioning/ipam/api/providers/packages/import")
        # 'https://vra.example/csp/gateway/am/api/login?access_token'
        ```
    """
    parsed = urlparse(target_url)
    return f"{parsed.scheme}://{parsed.netloc}{CSP_LOGIN_PATH}"


def acquire_token(
    session: requests.Session,
    target_url: str,
    username: str,
    password: str,
    *,
    timeout: int = 60,
    logger: Logger | None = None,
) -> str:
    """Log in to vRA and return the access token.

    Args:
        session: HTTP session carrying the TLS settings of the run.
        target_url: Upload target; only its scheme and host are used.
        username: vRA user name.
        password: vRA password.
        timeout: Per-request timeout (seconds).
        logger: Optional logger; defaults to the global logger.

    Returns:
        The access_token string from the login response.

    Raises:
        AuthenticationError: On any status other than 200, or when the
            request fails before a response arrives.
        MalformedResponseError: If the body is not a JSON object with a
            string access_token.
    """
    logger = logger if logger is not None else get_global_logger()
    url = login_url_for(target_url)
    logger.verbose("AUTH", f"POST {url} as {username}")

    try:
        response = session.post(
            url, json={"username": username, "password": password}, timeout=timeout
        )
    except requests.RequestException as err:
        raise AuthenticationError(f"Failed to login on {url}: {err}") from err

    body = response.text
    if response.status_code != 200:
        raise AuthenticationError(
            f"Failed to login on {url}: {body}",
            status_code=response.status_code,
            body=body,
        )

    try:
        payload = response.json()
    except ValueError as err:
        raise MalformedResponseError(
            f"Login response from {url} is not valid JSON"
        ) from err
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"Login response from {url} is not an object")

    token = payload.get("access_token")
    if not isinstance(token, str):
        raise MalformedResponseError(
            f"Login response from {url} has no string 'access_token'"
        )
    logger.verbose("AUTH", f"Obtained vRA token ending in ...{token[-4:]}")
    return token
