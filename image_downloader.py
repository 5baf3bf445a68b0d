"""Download generated images from their URL and save them under images/."""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import requests
from PIL import Image, UnidentifiedImageError

from image_config import DEFAULT_DOWNLOAD_TIMEOUT, Settings


LOGGER = logging.getLogger(__name__)

OUTPUT_DIR = "images"


class DownloadError(Exception):
    """The image could not be fetched from its URL"""
    pass


class FileSaveError(Exception):
    """The fetched image could not be written to disk"""
    pass


class ImageDownloader:
    """
    Fetches image bytes over HTTP and writes them unchanged to disk.

    Failures are reported on the console and never raised to the caller,
    so one lost image does not end an interactive session.
    """

    def __init__(
        self,
        output_dir: Union[str, Path] = OUTPUT_DIR,
        timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            output_dir: Target directory; relative paths resolve against
                the working directory at save time
            timeout: Per-request timeout in seconds
            session: HTTP session to reuse (a new one is created otherwise)
        """
        self.output_dir = Path(output_dir)
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageDownloader":
        """
        Build a downloader using the configured download timeout.

        Args:
            settings: Loaded session settings

        Returns:
            ImageDownloader writing into the default images/ folder
        """
        return cls(timeout=settings.download_timeout)

    def _fetch(self, image_url: str) -> bytes:
        """
        GET the image and return its raw bytes.

        Raises:
            DownloadError: On connection failures and non-2xx responses
        """
        try:
            response = self._session.get(image_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise DownloadError(str(e)) from e
        return response.content

    @staticmethod
    def _ensure_folder(folder: Path) -> None:
        """Create the target folder if needed (idempotent)."""
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSaveError(str(e)) from e

    @staticmethod
    def _write(file_path: Path, image_bytes: bytes) -> None:
        """
        Write the bytes unchanged to file_path.

        Raises:
            FileSaveError: If the file cannot be written
        """
        try:
            with open(file_path, "wb") as f:
                f.write(image_bytes)
        except OSError as e:
            raise FileSaveError(str(e)) from e

    @staticmethod
    def _dimensions(file_path: Path) -> Optional[Tuple[int, int]]:
        """
        Read the pixel size of a saved image.

        Returns:
            (width, height), or None if Pillow cannot or will not open it
        """
        try:
            with Image.open(file_path) as image:
                return image.size
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            LOGGER.debug("Could not read dimensions of %s: %s", file_path, e)
            return None

    def save(self, image_url: str, filename: str) -> Optional[Path]:
        """
        Download an image and save it as output_dir/filename.

        Args:
            image_url: URL returned by the image API
            filename: Target file name, already built by the caller

        Returns:
            Path of the written file, or None if the download or the write
            failed
        """
        folder = self.output_dir if self.output_dir.is_absolute() else Path.cwd() / self.output_dir
        file_path = folder / filename

        print("⬇️ Downloading image...")

        try:
            self._ensure_folder(folder)
            image_bytes = self._fetch(image_url)
            self._write(file_path, image_bytes)
        except DownloadError as e:
            print(f"❌ Download error: {e}")
            return None
        except FileSaveError as e:
            print(f"❌ File save error: {e}")
            return None

        print(f"✓ Image saved: {file_path}")
        print(f"  File size: {len(image_bytes):,} bytes")

        size = self._dimensions(file_path)
        if size is not None:
            print(f"  Dimensions: {size[0]}x{size[1]}")

        LOGGER.info("Saved %d bytes to %s", len(image_bytes), file_path)
        return file_path

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def __enter__(self) -> "ImageDownloader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
