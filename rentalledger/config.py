"""
Default configuration. Every key can be overridden with a ``RENTAL_``
prefixed environment variable (values are parsed as JSON where possible,
e.g. ``RENTAL_ENFORCE_OCCUPANCY=false``) or by the mapping passed to
``create_app``.
"""
import os

from rentalledger.models.store import DEFAULT_DATA_PATH

DEFAULTS = {
    "SECRET_KEY": "dev-secret-change-me",
    # None keeps the store in memory only
    "DATA_PATH": str(DEFAULT_DATA_PATH),
    # Composite indexes: (collection, *filter_fields, order_field)
    "STORE_INDEXES": [["rentals", "userId", "createdAt"]],
    "ENFORCE_OCCUPANCY": True,
    "BOOTSTRAP_ADMIN": True,
    "ADMIN_EMAIL": "admin@velocity.com",
    "ADMIN_PASSWORD": "Admin123",
    "DISPLAY_TIMEZONE": "Asia/Manila",
    "CURRENCY_SYMBOL": "₱",
    # Prefix for site-relative vehicle images in customer listings
    "PUBLIC_BASE_URL": "",
    "STREAM_KEEPALIVE_SECONDS": 15,
    "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
}
