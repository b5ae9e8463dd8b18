"""Command-line interface for the Zenfolio folder uploader."""

import asyncio
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from zf_folder_uploader.api_client import DEFAULT_API_URL, ZenfolioAPIClient
from zf_folder_uploader.models import UploadResult, WatchSettings
from zf_folder_uploader.orchestrator import LoginFailedError, UploadOrchestrator
from zf_folder_uploader.scanner import UnsupportedFileTypeError, mime_type_for
from zf_folder_uploader.streaming import StreamingUploader

app = typer.Typer(
    name="zf-folder-uploader",
    help="Watch a folder and upload new images to a Zenfolio gallery",
    add_completion=False,
)
console = Console()


def setup_logging(verbose: bool) -> None:
    """Configure logging with Rich handler.

    Args:
        verbose: Enable verbose (DEBUG) logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )


def print_summary(results: list[UploadResult]) -> int:
    """Print an upload summary.

    Returns:
        Exit code (0 if every upload succeeded, 1 otherwise)
    """
    successful = sum(1 for r in results if r.success)
    failed = len(results) - successful

    console.print("\n[bold]Upload Summary:[/bold]")
    console.print(f"  Total photos: {len(results)}")
    console.print(f"  [green]Successful: {successful}[/green]")
    console.print(f"  [red]Failed: {failed}[/red]")

    if failed > 0:
        console.print("\n[bold red]Failed uploads:[/bold red]")
        for result in results:
            if not result.success:
                console.print(f"  - {result.photo_path.name}: {result.error_message}")
        return 1
    return 0


async def async_watch(settings: WatchSettings, api_url: str, once: bool) -> int:
    """Async watch implementation.

    Returns:
        Exit code
    """
    logger = logging.getLogger(__name__)

    try:
        async with ZenfolioAPIClient(api_url, timeout=settings.timeout) as api_client:
            orchestrator = UploadOrchestrator(api_client, settings)
            if once:
                results = await orchestrator.run_once()
                return print_summary(results)

            logger.info(
                f"Watching {settings.image_root} for gallery {settings.gallery_id}, "
                f"polling every {settings.poll_interval:g}s"
            )
            await orchestrator.run_forever()
            return 0
    except LoginFailedError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.error(f"Watch failed: {e}", exc_info=True)
        return 1


async def async_upload_one(
    photo: Path,
    settings: WatchSettings,
    api_url: str,
    content_type: str,
) -> int:
    """Upload a single file to the gallery.

    Returns:
        Exit code
    """
    logger = logging.getLogger(__name__)

    try:
        async with ZenfolioAPIClient(api_url, timeout=settings.timeout) as api_client:
            orchestrator = UploadOrchestrator(api_client, settings)
            await orchestrator.login_until_success()
            snapshot = await orchestrator.load_snapshot()

            uploader = StreamingUploader(api_client)
            photo_id = await uploader.upload(
                photo,
                photo.stat().st_size,
                snapshot.upload_url_for(photo.name),
                content_type,
            )
            if settings.collection_id is not None:
                await api_client.collection_add_photo(settings.collection_id, photo_id)

        console.print(
            f"[green]Uploaded {photo.name} to '{snapshot.title}' "
            f"(photo ID {photo_id})[/green]"
        )
        return 0
    except Exception as e:
        logger.error(f"Upload failed: {e}", exc_info=True)
        return 1


def build_settings(
    login: str,
    password: str,
    folder: Path,
    gallery_id: int | None,
    **kwargs: Any,
) -> WatchSettings:
    """Gather options into settings, prompting for a missing gallery ID."""
    if gallery_id is None:
        gallery_id = typer.prompt("Gallery ID", type=int)
    try:
        return WatchSettings(
            login=login,
            password=password,
            image_root=folder,
            gallery_id=gallery_id,
            **kwargs,
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(2)


LoginOption = typer.Option(
    ..., "--login", "-u", envvar="ZENFOLIO_LOGIN", help="Zenfolio account login"
)
PasswordOption = typer.Option(
    ...,
    "--password",
    "-p",
    envvar="ZENFOLIO_PASSWORD",
    help="Zenfolio account password",
)
GalleryOption = typer.Option(
    None,
    "--gallery-id",
    "-g",
    envvar="ZENFOLIO_GALLERY_ID",
    help="Target gallery ID (prompted for if omitted)",
)
CollectionOption = typer.Option(
    None,
    "--collection-id",
    envvar="ZENFOLIO_COLLECTION_ID",
    help="Collection to add every uploaded photo to",
)
TimeoutOption = typer.Option(
    30.0, "--timeout", envvar="ZENFOLIO_TIMEOUT", help="HTTP timeout in seconds"
)
LoginMaxWaitOption = typer.Option(
    60.0,
    "--login-max-wait",
    envvar="ZENFOLIO_LOGIN_MAX_WAIT",
    help="Maximum delay in seconds between login attempts",
)
LoginAttemptsOption = typer.Option(
    0,
    "--login-attempts",
    envvar="ZENFOLIO_LOGIN_ATTEMPTS",
    min=0,
    help="Give up after this many login attempts (0 retries forever)",
)
ApiUrlOption = typer.Option(
    DEFAULT_API_URL, "--api-url", envvar="ZENFOLIO_API_URL", help="API endpoint URL"
)
VerboseOption = typer.Option(
    False, "--verbose", "-v", help="Enable verbose logging"
)


@app.command()
def watch(
    folder: Path = typer.Option(
        ...,
        "--folder",
        "-f",
        envvar="ZENFOLIO_IMAGE_FOLDER",
        file_okay=False,
        dir_okay=True,
        help="Image root; the gallery title names the watched subfolder",
    ),
    login: str = LoginOption,
    password: str = PasswordOption,
    gallery_id: int | None = GalleryOption,
    collection_id: int | None = CollectionOption,
    interval: float = typer.Option(
        30.0,
        "--interval",
        "-i",
        envvar="ZENFOLIO_POLL_INTERVAL",
        help="Seconds to wait between scans",
    ),
    timeout: float = TimeoutOption,
    login_max_wait: float = LoginMaxWaitOption,
    login_attempts: int = LoginAttemptsOption,
    max_concurrent: int = typer.Option(
        1,
        "--max-concurrent",
        "-c",
        min=1,
        max=16,
        help="Maximum number of concurrent uploads",
    ),
    api_url: str = ApiUrlOption,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Simulate uploads without sending files",
    ),
    once: bool = typer.Option(
        False,
        "--once",
        help="Run a single scan and exit",
    ),
    verbose: bool = VerboseOption,
) -> None:
    """Watch FOLDER/<gallery title> and upload new images.

    Files already present in the gallery are skipped. Files held open for
    exclusive access by another process are retried on the next scan.
    Only JPEG (.jpg .jpeg .jpe .jfif .jfi .jif), TIFF (.tif .tiff), PNG
    (.png) and GIF (.gif) files are uploaded; other files, such as .heic,
    are ignored.
    """
    setup_logging(verbose)

    settings = build_settings(
        login,
        password,
        folder,
        gallery_id,
        collection_id=collection_id,
        poll_interval=interval,
        timeout=timeout,
        login_max_wait=login_max_wait,
        login_attempts=login_attempts,
        max_concurrent=max_concurrent,
        dry_run=dry_run,
    )

    exit_code = asyncio.run(async_watch(settings, api_url, once))
    raise typer.Exit(exit_code)


@app.command()
def upload(
    photo: Path = typer.Argument(..., help="Image file to upload"),
    login: str = LoginOption,
    password: str = PasswordOption,
    gallery_id: int | None = GalleryOption,
    collection_id: int | None = CollectionOption,
    timeout: float = TimeoutOption,
    login_max_wait: float = LoginMaxWaitOption,
    login_attempts: int = LoginAttemptsOption,
    api_url: str = ApiUrlOption,
    verbose: bool = VerboseOption,
) -> None:
    """Upload a single image file to a gallery."""
    setup_logging(verbose)

    if not photo.exists():
        console.print("[red]Error: File doesn't exist[/red]")
        raise typer.Exit(2)
    if photo.is_dir():
        console.print("[red]Error: Cannot upload directories[/red]")
        raise typer.Exit(2)
    try:
        content_type = mime_type_for(photo)
    except UnsupportedFileTypeError:
        console.print("[red]Error: Unsupported file type[/red]")
        raise typer.Exit(2)

    settings = build_settings(
        login,
        password,
        photo.parent,
        gallery_id,
        collection_id=collection_id,
        timeout=timeout,
        login_max_wait=login_max_wait,
        login_attempts=login_attempts,
    )

    exit_code = asyncio.run(
        async_upload_one(photo.resolve(), settings, api_url, content_type)
    )
    raise typer.Exit(exit_code)


if __name__ == "__main__":
    app()
