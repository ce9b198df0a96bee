import uuid
import os
import logging
from pathlib import Path
from typing import Optional, Union
from pydantic import BaseModel
import config

logger = logging.getLogger(__name__)

# Configuration
UPLOAD_FOLDER = config.UPLOAD_FOLDER
POST_THUMBNAILS_BUCKET = "post-thumbnails"
BUCKETS = {POST_THUMBNAILS_BUCKET}
ALLOWED_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.gif', '.webp'}
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB


class ImageValidationError(ValueError):
    """An uploaded file is not an acceptable image."""


class StorageError(Exception):
    """The object store could not persist a file."""


class UploadedImage(BaseModel):
    content: bytes
    filename: str
    content_type: Optional[str] = None


class ReferencedImage(BaseModel):
    url: str


ImageSource = Union[UploadedImage, ReferencedImage]


def bucket_folder(bucket: str) -> str:
    return os.path.join(UPLOAD_FOLDER, bucket)

def ensure_bucket_directory(bucket: str):
    Path(bucket_folder(bucket)).mkdir(parents=True, exist_ok=True)

def generate_uuid_filename(original_filename: str) -> str:
    """Generate a UUID filename with original extension"""
    ext = Path(original_filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        ext = '.png'  # Default to PNG if extension not allowed
    return f"{uuid.uuid4()}{ext}"

def validate_image(image: UploadedImage):
    """Reject anything that is not an image or is larger than 5MB."""
    content_type = image.content_type or ""
    if not content_type.startswith("image/"):
        raise ImageValidationError("Please select an image file")
    if Path(image.filename or "").suffix.lower() not in ALLOWED_EXTENSIONS:
        raise ImageValidationError("Please select an image file")
    if len(image.content) > MAX_FILE_SIZE:
        raise ImageValidationError("Image must be less than 5MB")

def get_public_url(bucket: str, uuid_filename: str) -> Optional[str]:
    """Generate the CDN URL for a stored object"""
    if not uuid_filename:
        return None
    return f"{config.PUBLIC_BASE_URL}/cdn/{bucket}/{uuid_filename}"

def save_image(image: UploadedImage, bucket: str = POST_THUMBNAILS_BUCKET) -> str:
    """Store an uploaded image and return its public URL."""
    validate_image(image)
    uuid_filename = generate_uuid_filename(image.filename)
    try:
        ensure_bucket_directory(bucket)
        file_path = os.path.join(bucket_folder(bucket), uuid_filename)
        with open(file_path, 'wb') as f:
            f.write(image.content)
    except OSError as e:
        logger.error(f"Failed to store {image.filename} in {bucket}: {e}")
        raise StorageError(f"Could not store {image.filename}") from e
    logger.info(f"Stored {image.filename} as {bucket}/{uuid_filename}")
    return get_public_url(bucket, uuid_filename)

def resolve_image(source: Optional[ImageSource], bucket: str = POST_THUMBNAILS_BUCKET) -> Optional[str]:
    """Turn a file-or-URL image choice into the URL that gets written to the store."""
    if source is None:
        return None
    if isinstance(source, UploadedImage):
        return save_image(source, bucket)
    url = source.url.strip()
    return url or None
