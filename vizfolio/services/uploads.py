"""
Image upload checks and object path naming for avatars and project images
"""
import time
from dataclasses import dataclass
from typing import Optional

from vizfolio.config import settings


@dataclass
class ImageFile:
    """A file picked by the user, before it is sent to storage"""
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        if "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[-1].lower()


def _format_limit(max_bytes: int) -> str:
    return f"{max_bytes // (1024 * 1024)}MB"


def validate_image(file: ImageFile, max_bytes: int) -> Optional[str]:
    """Return an error message for a file that must not be uploaded, else None"""
    if not (file.content_type or "").startswith("image/"):
        return "Please select an image file"
    if file.size > max_bytes:
        return f"File size must be less than {_format_limit(max_bytes)}"
    return None


def validate_avatar(file: ImageFile) -> Optional[str]:
    return validate_image(file, settings.AVATAR_MAX_BYTES)


def validate_project_image(file: ImageFile) -> Optional[str]:
    return validate_image(file, settings.PROJECT_IMAGE_MAX_BYTES)


def build_object_path(user_id: str, folder: str, file: ImageFile, timestamp: Optional[int] = None) -> str:
    """``{user_id}/{folder}/{millis}.{ext}``"""
    timestamp = timestamp if timestamp is not None else int(time.time() * 1000)
    name = f"{timestamp}.{file.extension}" if file.extension else str(timestamp)
    return f"{user_id}/{folder}/{name}"
