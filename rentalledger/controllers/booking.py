import json
import queue

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from ..exceptions import RentalNotFoundError
from ..services.rental_service import BookingRequest
from ..services.vehicle_service import filter_vehicles
from ..utils.decorators import customer_required
from .common import catalog, ledger, payload, receipt_json, vehicle_json

bp = Blueprint("booking", __name__)


@bp.get("/vehicles")
def list_vehicles():
    """Bookable vehicles: catalog minus open rentals, with optional filters."""
    q = {k: (v or "").strip() for k, v in request.args.items()}
    vehicles = ledger().list_available_vehicles(q.get("type") or None)
    vehicles = filter_vehicles(
        vehicles,
        keyword=q.get("q"),
        min_price=q.get("min"),
        max_price=q.get("max"),
    )
    return jsonify([vehicle_json(v, public=True) for v in vehicles])


@bp.get("/vehicles/<vid>")
def vehicle_detail(vid):
    """Catalog entry, shown even while the vehicle is reserved."""
    return jsonify(vehicle_json(catalog().get(vid), public=True))


@bp.post("/rentals")
@customer_required
def create_rental(ctx):
    """Book a vehicle for the signed-in customer and return the receipt."""
    data = payload()
    req = BookingRequest.for_user(
        ctx.user,
        vehicle_id=data.get("vehicleId"),
        pickup_date=data.get("pickupDate"),
        return_date=data.get("returnDate"),
        name=data.get("name"),
        phone=data.get("phone"),
        confirmation_number=data.get("confirmationNumber"),
    )
    rental = ledger().create_rental_record(req)
    return jsonify(receipt_json(rental)), 201


@bp.get("/rentals")
@customer_required
def my_rentals(ctx):
    return jsonify([r.to_dict() for r in ledger().user_rentals(ctx.uid)])


@bp.get("/rentals/stream")
@customer_required
def rentals_stream(ctx):
    """
    Server-sent events: the customer's full rental list on connect and after
    every change. The subscription is released when the client goes away.
    """
    keepalive = current_app.config["STREAM_KEEPALIVE_SECONDS"]
    uid = ctx.uid

    def events():
        updates = queue.Queue()
        sub = ledger().subscribe_to_user_rentals(uid, updates.put)
        try:
            while True:
                try:
                    rentals = updates.get(timeout=keepalive)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                body = json.dumps([r.to_dict() for r in rentals])
                yield f"event: rentals\ndata: {body}\n\n"
        finally:
            sub.cancel()

    return Response(
        stream_with_context(events()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@bp.get("/receipts/<code>")
@customer_required
def receipt(ctx, code):
    rental = ledger().find_by_confirmation(code)
    if not ctx.user.can_manage(rental):
        raise RentalNotFoundError(f"Error: no rental with confirmation number '{code}'")
    return jsonify(receipt_json(rental))


@bp.post("/rentals/<rid>/cancel")
@customer_required
def cancel_rental(ctx, rid):
    """Customers may cancel their own rental while it is still pending."""
    rental = ledger().cancel(rid, requester=ctx.user)
    return jsonify(rental.to_dict())
