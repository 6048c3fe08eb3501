"""
Upload Interfaces Package

Exposes the transport contract and its exception type.
"""

from upload.interfaces.uploader_interface import TransportError, UploaderInterface

# Public API
__all__ = [
    "TransportError",
    "UploaderInterface",
]
