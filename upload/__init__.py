"""
Upload Module

Upload pipeline with an error taxonomy, retry policy and backoff.
YouTube is the real transport; a mock transport serves tests.

Public API:
    - UploadPipeline: One pass over a batch of pending segments
    - UploadController: Coalescing background runner with backoff
    - UploadErrorKind / PassOutcome: Taxonomy and pass outcomes
    - TransportError: Classified transport failure
    - create_uploader: Factory function

Usage:
    from upload import UploadController, UploadPipeline, create_uploader

    pipeline = UploadPipeline(storage, create_uploader(), settings_store)
    controller = UploadController(pipeline)
    controller.trigger_pass("startup")
"""

from upload.constants import PassOutcome, UploadErrorKind
from upload.controllers.upload_controller import UploadController
from upload.controllers.upload_pipeline import PassReport, UploadPipeline
from upload.factory import UploaderFactory, create_uploader
from upload.interfaces.uploader_interface import TransportError, UploaderInterface
from upload.policy import POLICIES, RetryPolicy, classify_exception

# Public API
__all__ = [
    "POLICIES",
    "PassOutcome",
    "PassReport",
    "RetryPolicy",
    "TransportError",
    "UploadController",
    "UploadErrorKind",
    "UploadPipeline",
    "UploaderFactory",
    "UploaderInterface",
    "classify_exception",
    "create_uploader",
]
