from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..utils.constants import RentalStatus, Role, SessionKind
from ..utils.decorators import admin_required
from ..utils.sessions import sign_in, sign_out
from .common import analytics, catalog, ledger, payload, users, vehicle_json

bp = Blueprint("admin", __name__, url_prefix="/admin")


# ---------- session ----------
@bp.post("/login")
def admin_login():
    data = payload()
    user = users().authenticate(data.get("email"), data.get("password"), role=Role.ADMIN)
    sign_in(SessionKind.ADMIN, user)
    return jsonify(user.to_dict())


@bp.post("/logout")
def admin_logout():
    sign_out(SessionKind.ADMIN)
    return jsonify({"message": "Logged out"})


# ---------- rentals ----------
@bp.get("/rentals")
@admin_required
def admin_rentals(ctx):
    """Rentals for one status tab (default: pending; "all" for every status), newest first."""
    status = (request.args.get("status") or RentalStatus.PENDING).strip().lower()
    svc = ledger()
    rentals = svc.list_rentals(None if status == "all" else status)
    return jsonify({
        "status": status,
        "counts": svc.status_counts(),
        "rentals": [r.to_dict() for r in rentals],
    })


@bp.get("/rentals/<rid>")
@admin_required
def admin_rental_detail(ctx, rid):
    return jsonify(ledger().get_rental(rid).to_dict())


@bp.post("/rentals/<rid>/status")
@admin_required
def admin_set_status(ctx, rid):
    rental = ledger().set_status(rid, payload().get("status"))
    return jsonify(rental.to_dict())


@bp.post("/rentals/<rid>/approve")
@admin_required
def admin_approve(ctx, rid):
    """Vehicle handed over to the customer."""
    return jsonify(ledger().approve(rid).to_dict())


@bp.post("/rentals/<rid>/complete")
@admin_required
def admin_complete(ctx, rid):
    """Vehicle returned."""
    return jsonify(ledger().complete(rid).to_dict())


@bp.post("/rentals/<rid>/cancel")
@admin_required
def admin_cancel(ctx, rid):
    return jsonify(ledger().cancel(rid, requester=ctx.user).to_dict())


@bp.delete("/rentals/<rid>")
@admin_required
def admin_delete_rental(ctx, rid):
    ledger().delete_rental(rid)
    return "", 204


# ---------- vehicles ----------
@bp.get("/vehicles")
@admin_required
def admin_vehicles(ctx):
    vtype = request.args.get("type") or None
    return jsonify([vehicle_json(v) for v in catalog().list(vtype)])


@bp.post("/vehicles")
@admin_required
def admin_add_vehicle(ctx):
    vehicle = catalog().create(payload())
    return jsonify(vehicle_json(vehicle)), 201


@bp.get("/vehicles/<vid>")
@admin_required
def admin_vehicle_detail(ctx, vid):
    return jsonify(vehicle_json(catalog().get(vid)))


@bp.patch("/vehicles/<vid>")
@admin_required
def admin_update_vehicle(ctx, vid):
    return jsonify(vehicle_json(catalog().update(vid, payload())))


@bp.delete("/vehicles/<vid>")
@admin_required
def admin_delete_vehicle(ctx, vid):
    catalog().delete(vid)
    return "", 204


# ---------- dashboard ----------
@bp.get("/dashboard")
@admin_required
def admin_dashboard(ctx):
    return jsonify(analytics().dashboard())
