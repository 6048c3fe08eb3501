"""
Controllers Package

Upload pass implementation and its background coordinator.
"""

from upload.controllers.upload_controller import UploadController
from upload.controllers.upload_pipeline import PassReport, UploadPipeline

__all__ = [
    "PassReport",
    "UploadController",
    "UploadPipeline",
]
