"""Pytest configuration and shared fixtures."""

import pytest
from pathlib import Path

from zf_folder_uploader.models import GallerySnapshot, PhotoRecord, WatchSettings

API_URL = "https://api.zenfolio.com/api/1.8/zfapi.asmx"
UPLOAD_URL = "https://up.zenfolio.com/testuser/p123/upload.ushx"
GALLERY_ID = 675105122405010023


async def no_sleep(seconds: float) -> None:
    """Stand-in for asyncio.sleep that returns immediately."""
    return None


def photo_set_json(*file_names: str, title: str = "Gung Ho") -> dict:
    """Build a LoadPhotoSet JSON-RPC response body."""
    return {
        "result": {
            "Id": GALLERY_ID,
            "Title": title,
            "UploadUrl": UPLOAD_URL,
            "Photos": [
                {"Id": 1000 + i, "FileName": name} for i, name in enumerate(file_names)
            ],
        },
        "error": None,
        "id": 1,
    }


@pytest.fixture
def access_token() -> str:
    """Return a fake session token for testing."""
    return "test_session_token_123"


@pytest.fixture
def snapshot() -> GallerySnapshot:
    """Gallery snapshot that already holds a.jpg."""
    return GallerySnapshot(
        gallery_id=GALLERY_ID,
        title="Gung Ho",
        upload_url=UPLOAD_URL,
        photos=[PhotoRecord(file_name="a.jpg", photo_id="1000")],
    )


@pytest.fixture
def image_root(tmp_path: Path) -> Path:
    """Create an image root whose gallery folder holds test photos.

    Structure:
        root/
            Gung Ho/
                a.jpg
                b.jpg
                notes.txt
    """
    root = tmp_path / "root"
    gallery_dir = root / "Gung Ho"
    gallery_dir.mkdir(parents=True)
    (gallery_dir / "a.jpg").write_bytes(b"fake jpg a")
    (gallery_dir / "b.jpg").write_bytes(b"fake jpg b")
    (gallery_dir / "notes.txt").write_text("not an image")
    return root


@pytest.fixture
def settings(image_root: Path) -> WatchSettings:
    """Watch settings pointing at the test image root."""
    return WatchSettings(
        login="user@example.com",
        password="secret",
        image_root=image_root,
        gallery_id=GALLERY_ID,
        poll_interval=1.0,
        login_max_wait=1.0,
    )
