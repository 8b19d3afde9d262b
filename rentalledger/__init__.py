import logging

from flask import Flask, jsonify
from flask.logging import default_handler

from .config import DEFAULTS
from .controllers.admin import bp as admin_bp
from .controllers.auth import bp as auth_bp
from .controllers.booking import bp as booking_bp
from .controllers.views import bp as views_bp
from .exceptions import RentalLedgerError, TransportError
from .models.store import Store
from .services.common import STORE_EXTENSION
from .services.user_service import UserService

logger = logging.getLogger(__name__)


def _configure_logging(app):
    pkg_logger = logging.getLogger("rentalledger")
    pkg_logger.setLevel(app.config["LOG_LEVEL"])
    if default_handler not in pkg_logger.handlers:
        pkg_logger.addHandler(default_handler)


def _register_error_handlers(app):
    @app.errorhandler(RentalLedgerError)
    def handle_ledger_error(err):
        if isinstance(err, TransportError):
            logger.error("Store failure: %s", err.message)
        return jsonify(err.to_dict()), err.status_code


def create_app(config=None):
    app = Flask(__name__)
    app.config.from_mapping(DEFAULTS)
    app.config.from_prefixed_env("RENTAL")
    if config:
        app.config.update(config)
    _configure_logging(app)

    store = Store(app.config["DATA_PATH"], indexes=app.config["STORE_INDEXES"])
    app.extensions[STORE_EXTENSION] = store

    if app.config["BOOTSTRAP_ADMIN"]:
        UserService(store).ensure_admin(app.config["ADMIN_EMAIL"], app.config["ADMIN_PASSWORD"])

    app.register_blueprint(views_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(admin_bp)
    _register_error_handlers(app)

    return app
