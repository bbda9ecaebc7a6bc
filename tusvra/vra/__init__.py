"""vRA bundle import.

Public API:

- import_bundle: Import an uploaded bundle into vRA
- bundle_id_from_url: Extract the bundle id from an upload URL
"""

from .importer import IMPORT_OPTION, bundle_id_from_url, import_bundle

__all__ = ["import_bundle", "bundle_id_from_url", "IMPORT_OPTION"]
