"""Local inventory scanning for the watched image folder."""

import logging
import os
from pathlib import Path

from zf_folder_uploader.models import GallerySnapshot, LocalFileDescriptor

if os.name != "nt":
    import fcntl

logger = logging.getLogger(__name__)

# Supported image extensions and their upload content types
MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".jpe": "image/jpeg",
    ".jfif": "image/jpeg",
    ".jfi": "image/jpeg",
    ".jif": "image/jpeg",
    ".tiff": "image/tiff",
    ".tif": "image/tiff",
    ".png": "image/png",
    ".gif": "image/gif",
}

# ERROR_SHARING_VIOLATION, ERROR_LOCK_VIOLATION
SHARING_VIOLATION_ERRORS = {32, 33}


class UnsupportedFileTypeError(ValueError):
    """Exception raised for files with no known image content type."""

    pass


def is_image_file(path: Path) -> bool:
    """Check if a file is a supported image format.

    Args:
        path: Path to the file to check

    Returns:
        True if the file is a supported image format, False otherwise
    """
    return path.is_file() and path.suffix.lower() in MIME_TYPES


def mime_type_for(path: Path) -> str:
    """Resolve the upload content type for a file from its extension.

    Args:
        path: Path to the image file

    Returns:
        MIME type string

    Raises:
        UnsupportedFileTypeError: If the extension is not a supported image type
    """
    try:
        return MIME_TYPES[path.suffix.lower()]
    except KeyError:
        raise UnsupportedFileTypeError(f"Unsupported file type: {path.name}") from None


def is_locked(path: Path) -> bool:
    """Check whether another process holds the file for exclusive access.

    The file is opened for shared reading. On Windows a sharing or lock
    violation means the file is locked; elsewhere a non-blocking shared
    ``flock`` that would block means the same.

    Args:
        path: Path to the file to check

    Returns:
        True if the file is locked, False otherwise

    Raises:
        OSError: If the file cannot be opened for any other reason
    """
    try:
        with path.open("rb") as fh:
            if os.name != "nt":
                try:
                    fcntl.flock(fh.fileno(), fcntl.LOCK_SH | fcntl.LOCK_NB)
                except BlockingIOError:
                    return True
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
    except PermissionError as e:
        if getattr(e, "winerror", None) in SHARING_VIOLATION_ERRORS:
            return True
        raise
    return False


def list_local_files(directory: Path) -> list[LocalFileDescriptor]:
    """List unlocked image files in a directory, in directory listing order.

    The directory is created if it does not exist. A file that cannot be
    inspected is logged and skipped without aborting the scan.

    Args:
        directory: Directory to scan

    Returns:
        List of file descriptors
    """
    directory.mkdir(parents=True, exist_ok=True)

    files: list[LocalFileDescriptor] = []
    for path in directory.iterdir():
        if not is_image_file(path):
            logger.debug(f"Skipping non-image entry: {path.name}")
            continue

        try:
            if is_locked(path):
                logger.debug(f"Skipping locked file: {path.name}")
                continue
            size = path.stat().st_size
        except OSError as e:
            logger.warning(f"Cannot read {path.name}, skipping this cycle: {e}")
            continue

        files.append(LocalFileDescriptor(path=path.resolve(), size=size))

    return files


def scan_new_files(
    directory: Path, snapshot: GallerySnapshot
) -> list[LocalFileDescriptor]:
    """Find local images not yet present in the gallery snapshot.

    Args:
        directory: Watched directory
        snapshot: Current gallery snapshot

    Returns:
        Unlocked image files whose base name is not in the snapshot
    """
    known = snapshot.file_names
    new_files = [f for f in list_local_files(directory) if f.name not in known]
    if new_files:
        logger.info(f"Found {len(new_files)} new image(s) in {directory}")
    return new_files
