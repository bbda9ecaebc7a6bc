"""
HTTP transport setup for tus-vra-uploader.

One TransportConfig is built per run. It owns the extra headers, the TLS
verification toggle and the requests.Session used for the vRA login and
import calls. The TUS adapter reads the same headers and TLS flag so every
request of a run goes out with identical settings.

The config is treated as immutable once built, with one exception: the
Authorization header, which is set once after the bearer token is resolved.

Example:
    >>> from tusvra.io.transport import TransportConfig
    >>> transport = TransportConfig.build({"X-Team": "infra"}, verify_tls=False)
    >>> transport.set_bearer_token("eyJ0eXAiOi...")
    >>> transport.session.headers["Authorization"]
    'Bearer eyJ0eXAiOi...'
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from tusvra import __version__

USER_AGENT = f"tus-vra-uploader/{__version__}"


def make_session(
    headers: Mapping[str, str] | None = None, *, verify_tls: bool = True
) -> requests.Session:
    """
    Create a requests.Session for the vRA login and import calls.

    - Sets a User-Agent identifying the tool.
    - Applies the caller's extra headers.
    - Disables certificate verification when verify_tls is False and
      silences urllib3's InsecureRequestWarning, which would otherwise be
      printed once per request and drown out progress output.
    """
    s = requests.Session()
    s.headers.update({"User-Agent": USER_AGENT})
    if headers:
        s.headers.update(dict(headers))
    s.verify = verify_tls
    if not verify_tls:
        urllib3.disable_warnings(InsecureRequestWarning)
    return s


@dataclass
class TransportConfig:
    """HTTP client, extra headers and TLS flag for one run."""

    headers: dict[str, str]
    verify_tls: bool
    session: requests.Session = field(repr=False)

    @classmethod
    def build(
        cls, headers: Mapping[str, str] | None = None, *, verify_tls: bool = True
    ) -> TransportConfig:
        return cls(
            headers=dict(headers or {}),
            verify_tls=verify_tls,
            session=make_session(headers, verify_tls=verify_tls),
        )

    def set_bearer_token(self, token: str) -> None:
        """Inject the bearer token into all later requests of this run."""
        value = f"Bearer {token}"
        self.headers["Authorization"] = value
        self.session.headers["Authorization"] = value

    def close(self) -> None:
        self.session.close()
