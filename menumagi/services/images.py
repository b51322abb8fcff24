"""
Menu Image Storage

Uploaded menu photos are flattened to RGB, shrunk to fit the configured
bounds (800x600 by default) and re-encoded as JPEG before being written
under ``<media>/menu-images/<owner_id>/``. The media directory is served
at ``/media`` so the stored path doubles as a public URL.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from menumagi.core.config import get_settings

logger = logging.getLogger(__name__)

BUCKET = "menu-images"


class ImageRejected(Exception):
    """Upload refused; ``status_code`` is the HTTP status to report."""

    def __init__(self, message: str, status_code: int = 415):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class StoredImage:
    path: Path
    url: str
    size_bytes: int


def compress_image(
    data: bytes,
    max_width: int = 800,
    max_height: int = 600,
    quality: int = 85,
) -> bytes:
    """
    Resize (keeping aspect ratio) and re-encode an image as JPEG.

    Raises:
        ImageRejected: if the bytes are not a readable image
    """
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageRejected("File is not a readable image") from exc

    # JPEG has no alpha channel: paste transparent images onto white
    if image.mode in ("RGBA", "LA", "P"):
        if image.mode == "P":
            image = image.convert("RGBA")
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.split()[-1])
        image = background
    elif image.mode != "RGB":
        image = image.convert("RGB")

    width, height = image.size
    if width > max_width or height > max_height:
        ratio = min(max_width / width, max_height / height)
        new_size = (max(1, int(width * ratio)), max(1, int(height * ratio)))
        image = image.resize(new_size, Image.Resampling.LANCZOS)
        logger.debug(f"Image resized: {width}x{height} -> {new_size[0]}x{new_size[1]}")

    output = BytesIO()
    image.save(output, format="JPEG", quality=quality, optimize=True)
    return output.getvalue()


class ImageStorage:
    """Local object storage for menu images with public URLs."""

    def __init__(self, root: Path, base_url: str, max_bytes: int):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes

    def _bucket_dir(self) -> Path:
        return self.root / BUCKET

    def upload(self, owner_id: str, data: bytes) -> StoredImage:
        """Compress and store an image; returns its public URL."""
        if not data:
            raise ImageRejected("Empty upload", status_code=400)
        if len(data) > self.max_bytes:
            raise ImageRejected(
                f"Image exceeds {self.max_bytes // (1024 * 1024)}MB limit",
                status_code=413,
            )

        settings = get_settings()
        compressed = compress_image(
            data,
            max_width=settings.image_max_width,
            max_height=settings.image_max_height,
            quality=settings.image_jpeg_quality,
        )

        relative = f"{owner_id}/{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.jpg"
        path = self._bucket_dir() / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(compressed)

        reduction = (1 - len(compressed) / len(data)) * 100
        logger.info(
            f"Image stored for owner {owner_id}: {len(data) / 1024:.1f}KB -> "
            f"{len(compressed) / 1024:.1f}KB ({reduction:.0f}% reduction)"
        )

        return StoredImage(
            path=path,
            url=f"{self.base_url}/media/{BUCKET}/{relative}",
            size_bytes=len(compressed),
        )

    def path_for_url(self, image_url: str, owner_id: Optional[str] = None) -> Optional[Path]:
        """
        Map a public URL back to a file inside the bucket, or None.

        With ``owner_id`` the file must also sit in that owner's folder.
        """
        marker = f"/{BUCKET}/"
        if marker not in image_url:
            return None
        relative = image_url.split(marker, 1)[1]
        bucket = self._bucket_dir().resolve()
        candidate = (bucket / relative).resolve()
        if bucket not in candidate.parents:
            return None
        if owner_id is not None and (bucket / owner_id) not in candidate.parents:
            return None
        return candidate

    def delete(self, image_url: str, owner_id: str) -> bool:
        """Remove one of the owner's stored images. Returns False if the URL is not theirs."""
        path = self.path_for_url(image_url, owner_id)
        if path is None:
            logger.warning(f"Image not owned by {owner_id}, nothing deleted: {image_url}")
            return False
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Image deleted: {path.name}")
        return True


@lru_cache()
def get_image_storage() -> ImageStorage:
    settings = get_settings()
    return ImageStorage(
        root=Path(settings.media_directory),
        base_url=settings.app_base_url,
        max_bytes=settings.max_upload_bytes,
    )
