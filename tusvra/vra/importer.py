"""vRA bundle import.

After the TUS upload finishes, the server-assigned upload URL ends with the
identifier of the uploaded bundle. The import call hands that identifier
back to the vRA import endpoint (the same URL the file was uploaded to)
with an OVERWRITE policy.

The upload and the import are not transactional: a failed import leaves the
uploaded bundle on the server.
"""

from __future__ import annotations

import requests

from tusvra.exceptions import BundleImportError, MalformedResponseError
from tusvra.logging import Logger, get_global_logger
from tusvra.results import ImportResult

IMPORT_OPTION = "OVERWRITE"


def bundle_id_from_url(upload_url: str) -> str:
    """Return the last non-empty path segment of an upload URL.

    Example:
        ```python
        bundle_id_from_url("https://host/files/abc123")   # 'abc123'
        bundle_id_from_url("https://host/files/abc123/")  # 'abc123'
        ```

    Raises:
        MalformedResponseError: If the URL has no usable segment.
    """
    segments = [tok for tok in upload_url.split("/") if tok]
    if not segments:
        raise MalformedResponseError(f"No bundle id in upload URL '{upload_url}'")
    return segments[-1]


def import_bundle(
    session: requests.Session,
    token: str,
    import_url: str,
    upload_url: str,
    *,
    timeout: int = 120,
    logger: Logger | None = None,
) -> ImportResult:
    """Ask vRA to import the bundle uploaded at upload_url.

    Args:
        session: HTTP session carrying the TLS settings of the run.
        token: Bearer token for the Authorization header.
        import_url: vRA import endpoint (the upload target URL).
        upload_url: Session URL returned by the upload engine.
        timeout: Per-request timeout (seconds).
        logger: Optional logger; defaults to the global logger.

    Returns:
        ImportResult with the provider name and version reported by vRA.

    Raises:
        BundleImportError: If the response is not 201, or no response was
            received at all (status_code is None then).
        MalformedResponseError: If a 201 body lacks string providerName or
            providerVersion.
    """
    logger = logger if logger is not None else get_global_logger()
    bundle_id = bundle_id_from_url(upload_url)
    logger.info(f"Importing the bundle in VRA {import_url}/{bundle_id}")

    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }
    try:
        response = session.post(
            import_url,
            json={"bundleId": bundle_id, "option": IMPORT_OPTION},
            headers=headers,
            timeout=timeout,
        )
    except requests.RequestException as err:
        raise BundleImportError(
            f"Failed to import the bundle {bundle_id}: {err}"
        ) from err

    if response.status_code != 201:
        logger.error(f"response Status: {response.status_code} {response.reason}")
        logger.error(f"response Headers: {dict(response.headers)}")
        logger.error(f"response Body: {response.text}")
        raise BundleImportError(
            "Failed to import the bundle. StatusCode was "
            f"'{response.status_code} {response.reason}' instead of 201",
            status_code=response.status_code,
        )

    try:
        payload = response.json()
    except ValueError as err:
        raise MalformedResponseError(
            f"Import response for {bundle_id} is not valid JSON"
        ) from err
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"Import response for {bundle_id} is not an object")

    name = payload.get("providerName")
    version = payload.get("providerVersion")
    if not isinstance(name, str) or not isinstance(version, str):
        raise MalformedResponseError(
            "Import response is missing string 'providerName'/'providerVersion'"
        )
    return ImportResult(bundle_id=bundle_id, provider_name=name, provider_version=version)
