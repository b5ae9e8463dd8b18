"""Zenfolio Folder Uploader - Upload new images from a watched folder to a gallery."""

__version__ = "0.1.0"

from zf_folder_uploader.api_client import ZenfolioAPIClient
from zf_folder_uploader.models import (
    GallerySnapshot,
    LocalFileDescriptor,
    PhotoRecord,
    UploadResult,
    WatchSettings,
)
from zf_folder_uploader.orchestrator import UploadOrchestrator
from zf_folder_uploader.scanner import scan_new_files
from zf_folder_uploader.streaming import StreamingUploader

__all__ = [
    "ZenfolioAPIClient",
    "GallerySnapshot",
    "LocalFileDescriptor",
    "PhotoRecord",
    "UploadResult",
    "WatchSettings",
    "UploadOrchestrator",
    "scan_new_files",
    "StreamingUploader",
]
