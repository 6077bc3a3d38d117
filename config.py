"""
Configuration for SupplyOrderDesk.

The order API is an external service; this process only keeps the
order-building state (catalog cache, drafts, live order watcher).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
# This must happen before the Config class is defined
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    SESSION_COOKIE_NAME = "supply_order_desk_session"
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")

    # Debug mode
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"

    # ==========================================================================
    # Order API
    # ==========================================================================
    # API_BASE_URL: root of the distributor's REST API (no trailing slash)
    # API_TOKEN: service token used by the background threads (catalog
    #   refresh and order watcher). Browser sessions use their own token.
    # API_TIMEOUT_SECONDS: bound on every request, including submissions
    # ==========================================================================
    API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:8000/api")
    API_TOKEN = os.environ.get("API_TOKEN", "")
    API_TIMEOUT_SECONDS = float(os.environ.get("API_TIMEOUT_SECONDS", "10"))

    # ==========================================================================
    # Background services
    # ==========================================================================
    # ORDER_POLL_INTERVAL_SECONDS: fixed interval of the live order watcher
    # CATALOG_REFRESH_INTERVAL_SECONDS: how often the brief product list is
    #   re-fetched for barcode lookups
    # ==========================================================================
    ORDER_POLL_INTERVAL_SECONDS = float(
        os.environ.get("ORDER_POLL_INTERVAL_SECONDS", "5")
    )
    CATALOG_REFRESH_INTERVAL_SECONDS = float(
        os.environ.get("CATALOG_REFRESH_INTERVAL_SECONDS", "300")
    )
    START_BACKGROUND_SERVICES = True

    # Orders created by this user type never pop the "new order" dialog
    ADMIN_USER_TYPE = os.environ.get("ADMIN_USER_TYPE", "Admin")

    # Sent as phone/address when the selected doctor has none on file
    CONTACT_PLACEHOLDER = "-"

    MAX_NOTES_LENGTH = 1000

    # Drafts never submitted or cancelled are dropped after this long
    DRAFT_MAX_AGE_SECONDS = float(os.environ.get("DRAFT_MAX_AGE_SECONDS", str(12 * 60 * 60)))

    # Request bodies are small JSON documents
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1 MB


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 3600  # 1 hour


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    START_BACKGROUND_SERVICES = False
