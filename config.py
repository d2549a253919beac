"""
Configuration handling for the storefront and back-office.
"""
import os
import logging
from dotenv import load_dotenv

load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


class Config:
    """Settings read from the environment (or a local .env file)."""

    SECRET_KEY = os.getenv("SECRET_KEY", "bigode-dev")

    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        'sqlite:///' + os.path.join(basedir, 'database.db')
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # product images
    UPLOAD_FOLDER = os.getenv(
        "UPLOAD_FOLDER",
        os.path.join(basedir, 'static', 'uploads')
    )
    MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", 5 * 1024 * 1024))

    WHATSAPP_NUMBER = os.getenv("WHATSAPP_NUMBER", "5511999999999")
    WHATSAPP_COUNTRY_CODE = os.getenv("WHATSAPP_COUNTRY_CODE", "55")
    DEFAULT_CITY = os.getenv("DEFAULT_CITY", "Sorriso - MT")

    # storefront banner: comma-separated image URLs
    BANNER_IMAGES = [
        url.strip() for url in
        os.getenv("BANNER_IMAGES", "https://i.imgur.com/2bp1RkR.jpeg").split(",")
        if url.strip()
    ]
    BANNER_ROTATE_MS = int(os.getenv("BANNER_ROTATE_MS", 5000))

    SSE_HEARTBEAT_SECONDS = float(os.getenv("SSE_HEARTBEAT_SECONDS", 15))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE", "")


def setup_logging(level=None, log_file=None):
    """Configure root logging for the app process."""
    level = level or Config.LOG_LEVEL
    log_file = log_file if log_file is not None else Config.LOG_FILE

    handlers = [logging.StreamHandler()]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
