"""
tus-vra-uploader

A Python CLI tool that uploads a plugin bundle to a vRealize Automation
(vRA) host over the TUS resumable upload protocol and then imports it.

tus-vra-uploader provides:
  - vRA login (username/password to bearer token)
  - Resumable TUS upload with a bounded retry budget and fixed backoff
  - Live progress output from a background reporter
  - Bundle import with an OVERWRITE policy

Quick Start
-----------
Upload and import a bundle:

    $ tus-vra-uploader --vra-username=admin --vra-password=XXX \
        Infoblox.zip https://vrahost/provisioning/ipam/api/providers/packages/import

For full CLI documentation:

    $ tus-vra-uploader --help

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
core : module
    Run orchestration (auth, upload, import).
config : module
    RunConfig and the flag/YAML/environment layers.
auth : package
    vRA token acquisition.
io : package
    HTTP transport, TUS adapter and the resumable upload engine.
vra : package
    Bundle import.
progress : module
    Progress events and the background reporter.

Public API
----------
    from tusvra.config import RunConfig
    from tusvra.core import run
"""

__version__ = "0.1.0"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "Resumable TUS uploader with vRA bundle import"

# Re-export commonly used names for convenience
from tusvra.config import RunConfig
from tusvra.core import run
from tusvra.results import ImportResult, RunResult

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "RunConfig",
    "run",
    "RunResult",
    "ImportResult",
]
