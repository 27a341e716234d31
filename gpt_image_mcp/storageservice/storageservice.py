import base64
import logging
import threading
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_IMAGES_DIR = "images"


class ImageSaveError(RuntimeError):
    """Raised when a single image cannot be decoded or written."""


class ImageStorageService:
    """Writes generated images into a local directory.

    Relative directories are resolved against the process working directory
    each time they are used, and the directory is created on first save.
    """

    def __init__(self, images_dir: Union[str, Path] = DEFAULT_IMAGES_DIR) -> None:
        self._images_dir = Path(images_dir)

    @property
    def images_dir(self) -> Path:
        return Path.cwd() / self._images_dir

    @property
    def images_dir_name(self) -> str:
        return self._images_dir.name

    def ensure_images_dir(self) -> Path:
        images_dir = self.images_dir
        images_dir.mkdir(parents=True, exist_ok=True)
        return images_dir

    def save_base64_image(self, b64_data: str, filename: str) -> str:
        """Decode ``b64_data`` and write it to a new file named ``filename``.

        Returns the path of the written file. Existing files are never
        overwritten. Every failure is raised as :class:`ImageSaveError`.
        """
        try:
            image_bytes = self._decode(b64_data)
            file_path = self.ensure_images_dir() / filename
        except (ValueError, TypeError, OSError) as exc:
            raise ImageSaveError(f"Failed to save image: {exc}") from exc

        created = False
        try:
            with open(file_path, "xb") as fh:
                created = True
                fh.write(image_bytes)
        except OSError as exc:
            # Only remove a partial file this call created.
            if created:
                file_path.unlink(missing_ok=True)
            raise ImageSaveError(f"Failed to save image: {exc}") from exc

        logger.debug("Wrote %s bytes to %s", len(image_bytes), file_path)
        return str(file_path)

    @staticmethod
    def _decode(b64_data: str) -> bytes:
        """Strictly decode base64, ignoring line breaks and other whitespace."""
        if not isinstance(b64_data, str):
            raise TypeError(f"expected base64 text, got {type(b64_data).__name__}")
        return base64.b64decode("".join(b64_data.split()), validate=True)


_SERVICE: Optional[ImageStorageService] = None
_SERVICE_LOCK = threading.Lock()


def get_image_storage_service(images_dir: Union[str, Path] = DEFAULT_IMAGES_DIR) -> ImageStorageService:
    """Return a singleton ImageStorageService instance.

    The instance is created lazily on first call and is protected by a
    module-level lock to be safe in multi-threaded contexts. Later calls
    return the first instance regardless of ``images_dir``.
    """
    global _SERVICE
    if _SERVICE is not None:
        return _SERVICE
    with _SERVICE_LOCK:
        if _SERVICE is None:
            _SERVICE = ImageStorageService(images_dir)
    return _SERVICE
