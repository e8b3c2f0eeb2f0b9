# File handling functions

import logging
import os
import uuid
from werkzeug.utils import secure_filename
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def file_extension(filename):
    if not filename or '.' not in filename:
        return ''
    return filename.rsplit('.', 1)[1].lower()


def allowed_file(filename, allowed_extensions):
    # Check if file extension is allowed
    return file_extension(filename) in allowed_extensions


def is_image_file(filename, image_extensions):
    # Check if file is an image
    return file_extension(filename) in image_extensions


def save_uploaded_file(file, allowed_extensions, upload_folder='uploads', prefix=''):

    # Save uploaded file with a UUID prefix
    # Args:
    #   file: Flask FileStorage object
    #   allowed_extensions: set of accepted extensions
    #   upload_folder: base upload folder path (default 'uploads')
    #   prefix: optional name prefix, e.g. 'profile-'
    # Returns:
    #   str: URL path to saved file, or None if the file was rejected

    if file and file.filename and allowed_file(file.filename, allowed_extensions):
        filename = secure_filename(file.filename) or f'upload.{file_extension(file.filename)}'
        unique_filename = f"{prefix}{uuid.uuid4().hex}_{filename}"
        filepath = os.path.join(upload_folder, unique_filename)

        # Ensure directory exists
        os.makedirs(upload_folder, exist_ok=True)

        file.save(filepath)
        return f"/uploads/{unique_filename}"

    return None


def upload_path(file_url, upload_folder):
    # Map a '/uploads/<name>' URL back to its location on disk
    return os.path.join(upload_folder, os.path.basename(file_url))


def make_thumbnail(filepath, max_size=(256, 256)):
    # Square-crop and shrink a profile picture in place
    # Returns False when the file is not a readable image
    try:
        with Image.open(filepath) as img:
            size = min(img.size)
            left = (img.width - size) // 2
            top = (img.height - size) // 2
            thumb = img.crop((left, top, left + size, top + size))
            thumb.thumbnail(max_size, Image.Resampling.LANCZOS)
            thumb.save(filepath, format=img.format)
        return True
    except (UnidentifiedImageError, OSError) as e:
        logger.warning('[UPLOAD] Could not process image %s: %s', filepath, e)
        return False
