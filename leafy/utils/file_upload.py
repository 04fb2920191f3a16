"""
File upload validation and processing utilities.

Provides secure photo handling for plant identification with:
- Extension validation
- Content validation (magic number checking)
- Size limits
- Protection against double extension attacks
- Re-encoding into the versions the app needs (model payload, journal thumbnail)
"""

from __future__ import annotations
from typing import Dict, Tuple, Optional
from PIL import Image, ImageOps
from io import BytesIO
import base64
import logging
import os
from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

# Security: Allowed image file extensions
ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}

# Security: Maximum file size (8MB)
MAX_FILE_SIZE = 8 * 1024 * 1024

# Longest edge of the photo sent for identification
MODEL_MAX_EDGE = 1536

# Longest edge of the thumbnail kept in the journal
THUMBNAIL_MAX_EDGE = 256


def _safe_log_error(message: str) -> None:
    """Safely log an error, handling cases where no app context exists."""
    if has_app_context():
        current_app.logger.error(message)
    else:
        logger.error(message)


def allowed_file(filename: str) -> bool:
    """
    Check if filename has an allowed extension and no dangerous double extensions.

    Examples:
        >>> allowed_file('monstera.jpg')
        True
        >>> allowed_file('photo.php.jpg')  # Double extension attack
        False
        >>> allowed_file('../../../etc/passwd')
        False
    """
    if not filename or '.' not in filename:
        return False

    # Security: Prevent path traversal
    if '..' in filename or '/' in filename or '\\' in filename:
        return False

    ext = filename.rsplit('.', 1)[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        return False

    # Security: second-to-last extension must not be an executable type
    parts = filename.lower().split('.')
    if len(parts) > 2:
        dangerous_exts = {
            'php', 'phtml', 'php3', 'php4', 'php5',
            'exe', 'sh', 'bat', 'cmd', 'com',
            'js', 'py', 'rb', 'pl', 'cgi',
            'asp', 'aspx', 'jsp'
        }
        if parts[-2] in dangerous_exts:
            return False

    return True


def validate_image_content(file_bytes: bytes) -> bool:
    """
    Validate that file content is actually a valid image.

    Security: This prevents malicious files with spoofed extensions by checking
    the actual file content (magic numbers/file signature) using PIL.
    """
    try:
        img = Image.open(BytesIO(file_bytes))
        img.verify()
        return True
    except Exception:
        return False


def validate_upload_file(
    file,
    max_size: int = MAX_FILE_SIZE
) -> Tuple[bool, Optional[str], Optional[bytes]]:
    """
    Comprehensive file upload validation.

    Performs all security checks:
    1. File exists and has a name
    2. Extension is allowed
    3. File size is within limits
    4. File content is a valid image (magic number check)

    Args:
        file: FileStorage object from Flask request.files
        max_size: Maximum allowed file size in bytes (default: 8MB)

    Returns:
        (is_valid, error_message, file_bytes)
    """
    if not file or not file.filename:
        return False, "Please choose a photo of your plant.", None

    if not allowed_file(file.filename):
        return False, "Invalid file type. Only images (PNG, JPG, GIF, WebP) are allowed.", None

    file.seek(0, os.SEEK_END)
    file_length = file.tell()
    if file_length > max_size:
        max_mb = max_size / (1024 * 1024)
        return False, f"Photo must be less than {max_mb:.0f}MB.", None

    file.seek(0)
    file_bytes = file.read()

    if not validate_image_content(file_bytes):
        return False, "Invalid image file. Please upload a valid image.", None

    return True, None, file_bytes


def create_image_versions(file_bytes: bytes) -> Optional[Dict[str, str]]:
    """
    Re-encode an uploaded photo as JPEG in the two sizes the app uses.

    Args:
        file_bytes: Original image file bytes

    Returns:
        Dictionary with 2 versions, base64 encoded:
        - 'model': Sent for identification (max 1536px, 85% quality)
        - 'thumbnail': Stored with the journal entry (max 256px, 80% quality)
        Returns None if image processing fails
    """
    try:
        img = Image.open(BytesIO(file_bytes))

        # Fix orientation based on EXIF data (handles sideways photos from phones)
        img = ImageOps.exif_transpose(img)

        # JPEG doesn't support transparency; flatten onto white
        if img.mode in ('RGBA', 'LA', 'P'):
            img = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            img = background
        elif img.mode != 'RGB':
            img = img.convert('RGB')

        versions = {}
        for name, edge, quality in (("model", MODEL_MAX_EDGE, 85), ("thumbnail", THUMBNAIL_MAX_EDGE, 80)):
            version = img.copy()
            if version.width > edge or version.height > edge:
                version.thumbnail((edge, edge), Image.Resampling.LANCZOS)
            output = BytesIO()
            version.save(output, format='JPEG', quality=quality, optimize=True)
            versions[name] = base64.b64encode(output.getvalue()).decode("ascii")

        return versions

    except Exception as e:
        _safe_log_error(f"Error creating image versions: {e}")
        return None


def to_data_url(image_b64: str, mime_type: str = "image/jpeg") -> str:
    return f"data:{mime_type};base64,{image_b64}"
