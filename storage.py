"""
Blob storage for product images.

Files live under ``UPLOAD_FOLDER/products`` and are served by the
``uploaded_file`` route, so a stored image is identified by its public URL.
"""
import os
import secrets
import time
import logging
from pathlib import Path
from urllib.parse import urlparse

from flask import current_app, url_for
from werkzeug.utils import secure_filename

from errors import ImageRejected

logger = logging.getLogger(__name__)

IMAGE_PREFIX = "products"


def _upload_root():
    return current_app.config["UPLOAD_FOLDER"]


def _file_size(file_storage):
    stream = file_storage.stream
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def validate_image(file_storage):
    if not file_storage or not file_storage.filename:
        raise ImageRejected("Nenhum arquivo selecionado")

    if not (file_storage.mimetype or "").startswith("image/"):
        raise ImageRejected("Por favor, selecione apenas arquivos de imagem")

    if _file_size(file_storage) > current_app.config["MAX_IMAGE_BYTES"]:
        raise ImageRejected("A imagem deve ter no máximo 5MB")


def save_image(file_storage):
    """Store an uploaded image and return its public URL."""
    validate_image(file_storage)

    original = secure_filename(file_storage.filename)
    ext = Path(original).suffix.lower() or ".img"

    # Unique filename
    fname = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{ext}"
    folder = os.path.join(_upload_root(), IMAGE_PREFIX)
    os.makedirs(folder, exist_ok=True)
    file_storage.save(os.path.join(folder, fname))

    logger.info(f"Stored image {IMAGE_PREFIX}/{fname} ({original})")
    return public_url(f"{IMAGE_PREFIX}/{fname}")


def public_url(path):
    return url_for("uploaded_file", filename=path)


def path_from_url(url):
    """``/uploads/products/abc.png`` -> ``products/abc.png``; any other URL is refused."""
    parsed = urlparse(url or "")
    prefix = public_url(f"{IMAGE_PREFIX}/")
    if parsed.scheme or parsed.netloc or not parsed.path.startswith(prefix):
        raise ValueError(f"Not a stored image URL: {url}")

    name = parsed.path[len(prefix):]
    if not name or "/" in name:
        raise ValueError(f"Not a stored image URL: {url}")
    return f"{IMAGE_PREFIX}/{name}"



def delete_image(url):
    """Remove a stored image. Raises when the file cannot be removed."""
    rel = path_from_url(url)
    root = os.path.abspath(_upload_root())
    target = os.path.abspath(os.path.join(root, rel))
    if not target.startswith(root + os.sep):
        raise ValueError(f"Refusing to delete outside upload folder: {url}")
    os.remove(target)
    logger.info(f"Deleted image {rel}")


def delete_image_quietly(url):
    """Storage clean-up must never block the record deletion that triggered it."""
    if not url:
        return False
    try:
        delete_image(url)
        return True
    except (OSError, ValueError) as e:
        logger.warning(f"Error deleting image {url}: {str(e)}")
        return False
