"""Black-box tests for CLI entry point."""

from pathlib import Path
from typer.testing import CliRunner
from pytest_httpx import HTTPXMock

from zf_folder_uploader.cli import app

from conftest import API_URL, GALLERY_ID, UPLOAD_URL, photo_set_json

runner = CliRunner()

CREDENTIALS = ["--login", "user@example.com", "--password", "secret"]


def add_login_and_gallery(httpx_mock: HTTPXMock, *file_names: str) -> None:
    httpx_mock.add_response(
        method="POST", url=API_URL, json={"result": "token", "error": None}
    )
    httpx_mock.add_response(method="POST", url=API_URL, json=photo_set_json(*file_names))


class TestCLI:
    """Test command-line interface."""

    def test_cli_help(self) -> None:
        """Test CLI help output."""
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "Zenfolio gallery" in result.stdout

    def test_watch_help_lists_file_types(self) -> None:
        """Test watch help states which file types are uploaded."""
        result = runner.invoke(app, ["watch", "--help"])

        assert result.exit_code == 0
        assert ".tiff" in result.stdout
        assert ".gif" in result.stdout
        assert ".heic" in result.stdout

    def test_watch_once_success(
        self, image_root: Path, httpx_mock: HTTPXMock
    ) -> None:
        """Test a single watch cycle uploads the new file."""
        add_login_and_gallery(httpx_mock, "a.jpg")
        httpx_mock.add_response(
            method="POST", url=f"{UPLOAD_URL}?filename=b.jpg", text="1001"
        )

        result = runner.invoke(
            app,
            ["watch", "--folder", str(image_root), "--gallery-id", str(GALLERY_ID)]
            + CREDENTIALS
            + ["--once"],
        )

        assert result.exit_code == 0
        assert "Successful: 1" in result.stdout

    def test_watch_once_upload_failure(
        self, image_root: Path, httpx_mock: HTTPXMock
    ) -> None:
        """Test a failed upload in a single cycle exits with 1."""
        add_login_and_gallery(httpx_mock, "a.jpg")
        httpx_mock.add_response(
            method="POST",
            url=f"{UPLOAD_URL}?filename=b.jpg",
            text="quota exceeded",
            status_code=400,
        )

        result = runner.invoke(
            app,
            ["watch", "--folder", str(image_root), "--gallery-id", str(GALLERY_ID)]
            + CREDENTIALS
            + ["--once"],
        )

        assert result.exit_code == 1
        assert "Failed: 1" in result.stdout

    def test_watch_prompts_for_gallery(
        self, image_root: Path, httpx_mock: HTTPXMock
    ) -> None:
        """Test the gallery ID is prompted for when not configured."""
        add_login_and_gallery(httpx_mock, "a.jpg", "b.jpg")

        result = runner.invoke(
            app,
            ["watch", "--folder", str(image_root)] + CREDENTIALS + ["--once"],
            input=f"{GALLERY_ID}\n",
        )

        assert result.exit_code == 0
        assert "Gallery ID" in result.stdout
        assert "Total photos: 0" in result.stdout

    def test_watch_dry_run(self, image_root: Path, httpx_mock: HTTPXMock) -> None:
        """Test dry run sends no files."""
        add_login_and_gallery(httpx_mock, "a.jpg")

        result = runner.invoke(
            app,
            ["watch", "--folder", str(image_root), "--gallery-id", str(GALLERY_ID)]
            + CREDENTIALS
            + ["--once", "--dry-run"],
        )

        assert result.exit_code == 0
        assert len(httpx_mock.get_requests()) == 2

    def test_watch_login_attempts_exhausted(
        self, image_root: Path, httpx_mock: HTTPXMock
    ) -> None:
        """Test a bounded login policy exits with 1."""
        httpx_mock.add_response(
            method="POST",
            url=API_URL,
            json={
                "result": None,
                "error": {"code": "E_INVALIDCREDENTIALS", "message": "bad login"},
            },
            status_code=500,
        )

        result = runner.invoke(
            app,
            ["watch", "--folder", str(image_root), "--gallery-id", str(GALLERY_ID)]
            + CREDENTIALS
            + ["--login-attempts", "1", "--once"],
        )

        assert result.exit_code == 1

    def test_watch_invalid_interval(self, image_root: Path) -> None:
        """Test invalid settings are rejected before any network traffic."""
        result = runner.invoke(
            app,
            ["watch", "--folder", str(image_root), "--gallery-id", "1"]
            + CREDENTIALS
            + ["--interval", "0"],
        )

        assert result.exit_code == 2
        assert "Poll interval" in result.stdout

    def test_watch_credentials_from_env(
        self, image_root: Path, monkeypatch, httpx_mock: HTTPXMock
    ) -> None:
        """Test CLI reads configuration from environment variables."""
        monkeypatch.setenv("ZENFOLIO_LOGIN", "user@example.com")
        monkeypatch.setenv("ZENFOLIO_PASSWORD", "secret")
        monkeypatch.setenv("ZENFOLIO_IMAGE_FOLDER", str(image_root))
        monkeypatch.setenv("ZENFOLIO_GALLERY_ID", str(GALLERY_ID))
        add_login_and_gallery(httpx_mock, "a.jpg", "b.jpg")

        result = runner.invoke(app, ["watch", "--once"])

        assert result.exit_code == 0

    def test_upload_single_file(
        self, image_root: Path, httpx_mock: HTTPXMock
    ) -> None:
        """Test single-shot upload of one image."""
        add_login_and_gallery(httpx_mock, "a.jpg")
        httpx_mock.add_response(
            method="POST", url=f"{UPLOAD_URL}?filename=b.jpg", text="1001"
        )
        photo = image_root / "Gung Ho" / "b.jpg"

        result = runner.invoke(
            app, ["upload", str(photo), "--gallery-id", str(GALLERY_ID)] + CREDENTIALS
        )

        assert result.exit_code == 0
        assert "1001" in result.stdout
        upload_request = httpx_mock.get_requests()[-1]
        assert upload_request.headers["Content-Type"] == "image/jpeg"

    def test_upload_missing_file(self, tmp_path: Path) -> None:
        """Test single-shot upload of a missing file."""
        result = runner.invoke(
            app, ["upload", str(tmp_path / "gone.jpg"), "-g", "1"] + CREDENTIALS
        )

        assert result.exit_code == 2
        assert "doesn't exist" in result.stdout

    def test_upload_directory(self, tmp_path: Path) -> None:
        """Test single-shot upload refuses directories."""
        result = runner.invoke(app, ["upload", str(tmp_path), "-g", "1"] + CREDENTIALS)

        assert result.exit_code == 2
        assert "Cannot upload directories" in result.stdout

    def test_upload_unsupported_type(self, image_root: Path) -> None:
        """Test single-shot upload refuses unknown file types."""
        notes = image_root / "Gung Ho" / "notes.txt"

        result = runner.invoke(app, ["upload", str(notes), "-g", "1"] + CREDENTIALS)

        assert result.exit_code == 2
        assert "Unsupported file type" in result.stdout

    def test_upload_server_failure(
        self, image_root: Path, httpx_mock: HTTPXMock
    ) -> None:
        """Test single-shot upload failure exits with 1."""
        add_login_and_gallery(httpx_mock, "a.jpg")
        httpx_mock.add_response(
            method="POST",
            url=f"{UPLOAD_URL}?filename=b.jpg",
            text="error",
            status_code=500,
        )
        photo = image_root / "Gung Ho" / "b.jpg"

        result = runner.invoke(
            app, ["upload", str(photo), "--gallery-id", str(GALLERY_ID)] + CREDENTIALS
        )

        assert result.exit_code == 1
