from flask import Blueprint, jsonify

from ..utils.constants import Role, SessionKind
from ..utils.decorators import customer_required
from ..utils.sessions import sign_in, sign_out
from .common import payload, users

bp = Blueprint("auth", __name__, url_prefix="/auth")


@bp.post("/register")
def register_submit():
    """Create a customer account and sign it in."""
    data = payload()
    user = users().register(
        email=data.get("email"),
        password=data.get("password"),
        name=data.get("name"),
        phone=data.get("phone"),
    )
    sign_in(SessionKind.CUSTOMER, user)
    return jsonify(user.to_dict()), 201


@bp.post("/login")
def login_submit():
    data = payload()
    user = users().authenticate(data.get("email"), data.get("password"), role=Role.USER)
    sign_in(SessionKind.CUSTOMER, user)
    return jsonify(user.to_dict())


@bp.post("/logout")
def logout():
    sign_out(SessionKind.CUSTOMER)
    return jsonify({"message": "Logged out"})


@bp.get("/me")
@customer_required
def profile(ctx):
    return jsonify(ctx.user.to_dict())


@bp.patch("/me")
@customer_required
def update_profile(ctx):
    """Edit name/phone; rentals already booked keep their copied identity."""
    data = payload()
    user = users().update_profile(ctx.uid, name=data.get("name"), phone=data.get("phone"))
    return jsonify(user.to_dict())
