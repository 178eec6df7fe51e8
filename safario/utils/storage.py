import logging
import time
from pathlib import Path
from typing import Optional

from safario.config import settings

logger = logging.getLogger(__name__)

BUCKETS = ("lost-items", "profile-photos")

# Extension by accepted content type; /storage serves files by extension
IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

class ObjectStorage:
    """Filesystem-backed buckets with public URLs served under /storage"""

    def __init__(self, base_dir: str, public_base_url: str, max_bytes: int):
        self.base_dir = Path(base_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.max_bytes = max_bytes

    def validate_image(self, content_type: str, size: int) -> str:
        """Extension for an accepted image; ValueError otherwise"""
        ext = IMAGE_EXTENSIONS.get((content_type or "").split(";")[0].strip().lower())
        if ext is None:
            raise ValueError("Please select a JPEG, PNG, WebP or GIF image")
        if size > self.max_bytes:
            raise ValueError(f"Image size must be less than {self.max_bytes // (1024 * 1024)}MB")
        return ext

    def object_name(self, owner_id: str, ext: str) -> str:
        return f"{owner_id}-{int(time.time() * 1000)}.{ext}"

    def upload(self, bucket: str, owner_id: str, content: bytes, content_type: str) -> str:
        """Store an image and return its public URL"""
        if bucket not in BUCKETS:
            raise ValueError(f"Unknown bucket: {bucket}")
        ext = self.validate_image(content_type, len(content))

        name = self.object_name(owner_id, ext)
        bucket_dir = self.base_dir / bucket
        bucket_dir.mkdir(parents=True, exist_ok=True)
        (bucket_dir / name).write_bytes(content)

        logger.info(f"Stored {len(content)} bytes in {bucket}/{name}")
        return self.public_url(bucket, name)

    def public_url(self, bucket: str, name: str) -> str:
        return f"{self.public_base_url}/storage/{bucket}/{name}"

    def path_for_url(self, url: str) -> Optional[Path]:
        prefix = f"{self.public_base_url}/storage/"
        if not url.startswith(prefix):
            return None
        bucket, _, name = url[len(prefix):].partition("/")
        if bucket not in BUCKETS or not name or "/" in name:
            return None
        return self.base_dir / bucket / name

    def delete(self, url: str) -> None:
        """Remove an object stored by ``upload``; unknown URLs are ignored"""
        path = self.path_for_url(url)
        if path is None:
            return
        path.unlink(missing_ok=True)
        logger.info(f"Removed {path.parent.name}/{path.name}")

object_storage = ObjectStorage(
    settings.STORAGE_DIR,
    settings.PUBLIC_BASE_URL,
    settings.MAX_IMAGE_BYTES
)
