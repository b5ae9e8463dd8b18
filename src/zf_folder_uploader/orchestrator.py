"""Incremental sync loop: scan the watched folder and upload new images."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    stop_never,
    wait_exponential,
)

from zf_folder_uploader.api_client import (
    AuthenticationError,
    RemoteGalleryClient,
    ZenfolioAPIError,
)
from zf_folder_uploader.models import (
    GallerySnapshot,
    LocalFileDescriptor,
    PhotoRecord,
    UploadResult,
    WatchSettings,
)
from zf_folder_uploader.scanner import mime_type_for, scan_new_files
from zf_folder_uploader.streaming import StreamingUploader

logger = logging.getLogger(__name__)

DRY_RUN_PHOTO_ID = "dry_run_photo_id"


class LoginFailedError(Exception):
    """Exception raised when the configured login attempts are exhausted."""

    pass


class UploadOrchestrator:
    """Polls the watched folder and uploads images missing from the gallery."""

    def __init__(
        self,
        api_client: RemoteGalleryClient,
        settings: WatchSettings,
        uploader: StreamingUploader | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            api_client: Remote gallery client, owned for the run's lifetime
            settings: Watch settings
            uploader: Streaming uploader, built from api_client if omitted
            sleep: Coroutine used for every intentional wait
        """
        self.api_client = api_client
        self.settings = settings
        self.uploader = uploader or StreamingUploader(api_client)
        self.snapshot: GallerySnapshot | None = None
        self._sleep = sleep
        self._semaphore = asyncio.Semaphore(settings.max_concurrent)
        self._lock = asyncio.Lock()
        self._in_flight: set[str] = set()
        self._needs_login = False

    @property
    def watch_dir(self) -> Path:
        """Watched directory: the image root joined with the gallery title."""
        if self.snapshot is None:
            raise RuntimeError("Gallery snapshot has not been loaded")
        return self.settings.image_root / self.snapshot.title

    async def login_until_success(self) -> None:
        """Log in, retrying with capped exponential backoff.

        Rejected credentials and API errors are retried forever unless
        ``login_attempts`` is set.

        Raises:
            LoginFailedError: If the configured attempts are exhausted
        """
        attempts = self.settings.login_attempts
        retrying = AsyncRetrying(
            retry=retry_if_result(lambda ok: not ok)
            | retry_if_exception_type(ZenfolioAPIError),
            wait=wait_exponential(multiplier=1, min=1, max=self.settings.login_max_wait),
            stop=stop_after_attempt(attempts) if attempts else stop_never,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
        )
        try:
            await retrying(
                self.api_client.login, self.settings.login, self.settings.password
            )
        except RetryError as e:
            raise LoginFailedError(
                f"Login failed after {attempts} attempt(s)"
            ) from e
        self._needs_login = False

    async def load_snapshot(self) -> GallerySnapshot:
        """Fetch the gallery listing and make it the working snapshot."""
        self.snapshot = await self.api_client.load_photo_set(
            self.settings.gallery_id, "Level1", True
        )
        return self.snapshot

    async def run_cycle(self) -> list[UploadResult]:
        """Scan the watched folder once and upload new files.

        Returns:
            Upload results for files attempted this cycle
        """
        if self.snapshot is None:
            await self.load_snapshot()

        new_files = scan_new_files(self.watch_dir, self.snapshot)
        if not new_files:
            return []
        return await self.upload_batch(new_files)

    async def upload_batch(
        self, files: list[LocalFileDescriptor]
    ) -> list[UploadResult]:
        """Upload files in listing order, at most max_concurrent at a time.

        A failed file is left out of the snapshot so the next scan picks it
        up again.

        Args:
            files: Candidate files from the scanner

        Returns:
            Upload results for files that were attempted
        """
        tasks = [self._upload_with_semaphore(f) for f in files]
        results = await asyncio.gather(*tasks)
        return [r for r in results if r is not None]

    async def run_once(self) -> list[UploadResult]:
        """Log in, load the gallery and run a single cycle."""
        await self.login_until_success()
        await self.load_snapshot()
        return await self.run_cycle()

    async def run_forever(self, max_cycles: int | None = None) -> None:
        """Run the polling loop.

        Errors inside a cycle are logged and the loop continues after the
        normal interval. An auth failure triggers a new login first.

        Args:
            max_cycles: Stop after this many cycles, None to never stop

        Raises:
            LoginFailedError: If login attempts are configured and exhausted
        """
        await self.login_until_success()

        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            try:
                if self._needs_login:
                    logger.info("Session rejected, logging in again")
                    await self.login_until_success()
                await self.run_cycle()
            except LoginFailedError:
                raise
            except AuthenticationError as e:
                logger.error(f"Authentication failed during cycle: {e}")
                self._needs_login = True
            except Exception as e:
                logger.error(f"Cycle failed: {e}", exc_info=True)

            cycles += 1
            if max_cycles is None or cycles < max_cycles:
                await self._sleep(self.settings.poll_interval)

    async def _upload_with_semaphore(
        self, descriptor: LocalFileDescriptor
    ) -> UploadResult | None:
        """Upload a single file with semaphore-based concurrency control.

        Args:
            descriptor: File to upload

        Returns:
            Upload result, or None if the file was already handled
        """
        async with self._semaphore:
            return await self._upload_file(descriptor)

    async def _upload_file(
        self, descriptor: LocalFileDescriptor
    ) -> UploadResult | None:
        """Upload one file and record it in the snapshot on success.

        Returns:
            Upload result, or None if the file was already handled
        """
        snapshot = self.snapshot
        name = descriptor.name

        async with self._lock:
            if snapshot.contains(name) or name in self._in_flight:
                logger.debug(f"Skipping {name}, already uploaded")
                return None
            self._in_flight.add(name)

        try:
            content_type = mime_type_for(descriptor.path)
            if self.settings.dry_run:
                logger.info(f"[DRY RUN] Would upload {name} to '{snapshot.title}'")
                photo_id = DRY_RUN_PHOTO_ID
            else:
                photo_id = await self.uploader.upload(
                    descriptor.path,
                    descriptor.size,
                    snapshot.upload_url_for(name),
                    content_type,
                )
                await self._attach_to_collection(photo_id)

            async with self._lock:
                snapshot.add_photo(PhotoRecord(file_name=name, photo_id=photo_id))

            if not self.settings.dry_run:
                logger.info(f"Successfully uploaded {name} to '{snapshot.title}'")
            return UploadResult(
                photo_path=descriptor.path,
                gallery_title=snapshot.title,
                success=True,
                photo_id=photo_id,
            )
        except AuthenticationError as e:
            logger.error(f"Failed to upload {name}: {e}")
            self._needs_login = True
            return self._failed(descriptor, e)
        except Exception as e:
            logger.error(f"Failed to upload {name}: {e}")
            return self._failed(descriptor, e)
        finally:
            self._in_flight.discard(name)

    async def _attach_to_collection(self, photo_id: str) -> None:
        """Add an uploaded photo to the configured collection, best effort.

        Args:
            photo_id: Photo ID returned by the upload
        """
        collection_id = self.settings.collection_id
        if collection_id is None:
            return
        try:
            await self.api_client.collection_add_photo(collection_id, photo_id)
        except Exception as e:
            logger.warning(
                f"Could not add photo {photo_id} to collection {collection_id}: {e}"
            )

    def _failed(self, descriptor: LocalFileDescriptor, error: Exception) -> UploadResult:
        """Build a failed upload result.

        Args:
            descriptor: File whose upload failed
            error: Exception raised by the attempt

        Returns:
            Failed upload result
        """
        return UploadResult(
            photo_path=descriptor.path,
            gallery_title=self.snapshot.title,
            success=False,
            error_message=str(error) or type(error).__name__,
        )
