"""Data models for the Zenfolio folder uploader."""

from dataclasses import dataclass, field
from pathlib import Path

import httpx


@dataclass(frozen=True)
class PhotoRecord:
    """A photo known to be present in the remote gallery."""

    file_name: str
    photo_id: str | None = None

    def __post_init__(self) -> None:
        """Validate photo record."""
        if not self.file_name:
            raise ValueError("Photo file name cannot be empty")


@dataclass
class GallerySnapshot:
    """In-memory copy of a gallery's metadata and known photo file names.

    The photo collection only grows during a run, and a file name appears
    in it at most once.
    """

    gallery_id: int
    title: str
    upload_url: str
    photos: list[PhotoRecord] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate snapshot data."""
        if not self.title:
            raise ValueError("Gallery title cannot be empty")
        if not self.upload_url:
            raise ValueError("Gallery upload URL cannot be empty")
        names = [photo.file_name for photo in self.photos]
        if len(names) != len(set(names)):
            raise ValueError("Gallery photo file names must be unique")

    @property
    def file_names(self) -> frozenset[str]:
        """File names already present in the gallery."""
        return frozenset(photo.file_name for photo in self.photos)

    def contains(self, file_name: str) -> bool:
        """Check whether a file name is already known (case-sensitive)."""
        return any(photo.file_name == file_name for photo in self.photos)

    def add_photo(self, record: PhotoRecord) -> None:
        """Append a photo record.

        Raises:
            ValueError: If the file name is already present
        """
        if self.contains(record.file_name):
            raise ValueError(
                f"Photo '{record.file_name}' is already in gallery '{self.title}'"
            )
        self.photos.append(record)

    def upload_url_for(self, file_name: str) -> str:
        """Build the upload target URL for a file name."""
        url = httpx.URL(self.upload_url).copy_merge_params({"filename": file_name})
        return str(url)


@dataclass(frozen=True)
class LocalFileDescriptor:
    """A file found in the watched directory during one scan."""

    path: Path
    size: int

    @property
    def name(self) -> str:
        """Base file name, as uploaded."""
        return self.path.name


@dataclass(frozen=True)
class UploadResult:
    """Result of a photo upload operation."""

    photo_path: Path
    gallery_title: str
    success: bool
    photo_id: str | None = None
    error_message: str | None = None

    def __post_init__(self) -> None:
        """Validate upload result."""
        if self.success and not self.photo_id:
            raise ValueError("Successful upload must have a photo_id")
        if not self.success and not self.error_message:
            raise ValueError("Failed upload must have an error_message")


@dataclass(frozen=True)
class WatchSettings:
    """Settings consumed by the upload orchestrator."""

    login: str
    password: str
    image_root: Path
    gallery_id: int
    collection_id: int | None = None
    poll_interval: float = 30.0
    timeout: float = 30.0
    login_max_wait: float = 60.0
    login_attempts: int = 0
    max_concurrent: int = 1
    dry_run: bool = False

    def __post_init__(self) -> None:
        """Validate settings."""
        if not self.login:
            raise ValueError("Login cannot be empty")
        if self.poll_interval <= 0:
            raise ValueError("Poll interval must be positive")
        if self.timeout <= 0:
            raise ValueError("Timeout must be positive")
        if self.login_max_wait <= 0:
            raise ValueError("Login max wait must be positive")
        if self.login_attempts < 0:
            raise ValueError("Login attempts cannot be negative")
        if self.max_concurrent < 1:
            raise ValueError("Max concurrent uploads must be at least 1")
