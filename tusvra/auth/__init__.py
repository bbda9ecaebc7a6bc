"""vRA authentication.

Public API:

- acquire_token: Exchange a username/password for a bearer token
- login_url_for: Derive the CSP login endpoint from a target URL
"""

from .token import CSP_LOGIN_PATH, acquire_token, login_url_for

__all__ = ["acquire_token", "login_url_for", "CSP_LOGIN_PATH"]
