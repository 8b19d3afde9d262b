from flask import Blueprint, jsonify

from .common import ledger

bp = Blueprint("views", __name__)


@bp.get("/")
def home():
    return jsonify({
        "message": "Rental ledger is running",
        "rentals": ledger().status_counts(),
    })
