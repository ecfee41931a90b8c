"""Media module for storing profile photos on local disk.

Images are stored under the upload directory named by the SHA-256 of their
content, so uploading the same image twice yields the same URL.
"""

import hashlib
import logging
import os

import aiofiles

from common import InvalidRequestError

logger = logging.getLogger(__name__)

# Accepted image types and the extension they are stored with
IMAGE_EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/png': '.png',
    'image/gif': '.gif',
    'image/webp': '.webp',
}


class MediaError(InvalidRequestError):
    """Raised when an upload is rejected."""
    pass


class MediaStore:
    """Stores uploaded images and returns the URL they are served from."""

    def __init__(self, upload_dir: str, max_bytes: int, base_url: str = "/uploads"):
        self.upload_dir = upload_dir
        self.max_bytes = max_bytes
        self.base_url = base_url.rstrip('/')

    async def accept(self, content: bytes, content_type: str) -> str:
        """Store an image and return its URL.

        Args:
            content: Raw image bytes
            content_type: MIME type reported by the client

        Raises:
            MediaError: If the content is not a supported image, is empty or too large
        """
        content_type = (content_type or '').split(';')[0].strip().lower()
        if not content_type.startswith('image/'):
            raise MediaError("File must be an image", errors=[{'field': 'photo', 'message': 'File must be an image'}])
        if content_type not in IMAGE_EXTENSIONS:
            raise MediaError(
                f"Unsupported image type: {content_type}",
                errors=[{'field': 'photo', 'message': f'Supported types: {", ".join(IMAGE_EXTENSIONS)}'}]
            )
        if not content:
            raise MediaError("File is empty", errors=[{'field': 'photo', 'message': 'File is empty'}])
        if len(content) > self.max_bytes:
            raise MediaError(
                "File is too large",
                errors=[{'field': 'photo', 'message': f'Maximum size is {self.max_bytes} bytes'}]
            )

        filename = f"{hashlib.sha256(content).hexdigest()[:32]}{IMAGE_EXTENSIONS[content_type]}"
        os.makedirs(self.upload_dir, exist_ok=True)
        file_path = os.path.join(self.upload_dir, filename)

        async with aiofiles.open(file_path, 'wb') as f:
            await f.write(content)

        logger.info(f"Stored upload {filename} ({len(content)} bytes)")
        return f"{self.base_url}/{filename}"


# Export public interface
__all__ = ['MediaStore', 'MediaError', 'IMAGE_EXTENSIONS']
