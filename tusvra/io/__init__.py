"""Input/Output operations for tus-vra-uploader.

Modules:

transport : module
    requests.Session construction, headers and TLS toggle.
tus : module
    Adapter over the tusclient create/resume/PATCH capability.
upload : module
    Resumable upload engine with a bounded retry budget.

Public API:

TransportConfig : class
    HTTP client, extra headers and TLS flag for one run.
ResumableUploadEngine : class
    Drives an upload to completion, retrying transient failures.
RetryPolicy : class
    Attempt budget, backoff and failure classification.
UploadSession : class
    Transfer state shared across attempts.
"""

from .transport import TransportConfig, make_session
from .tus import TusTransfer, TusTransport
from .upload import AttemptState, ResumableUploadEngine, RetryPolicy, UploadSession

__all__ = [
    "TransportConfig",
    "make_session",
    "TusTransport",
    "TusTransfer",
    "AttemptState",
    "ResumableUploadEngine",
    "RetryPolicy",
    "UploadSession",
]
