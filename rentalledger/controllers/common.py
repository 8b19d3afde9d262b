"""Helpers shared by the blueprints: request payloads, services and JSON shapes."""
from flask import current_app, request

from rentalledger.models.rental import Rental
from rentalledger.models.vehicle import Vehicle
from rentalledger.services.analytics_service import AnalyticsService
from rentalledger.services.common import full_image_url
from rentalledger.services.rental_service import RentalService
from rentalledger.services.user_service import UserService
from rentalledger.services.vehicle_service import VehicleService
from rentalledger.utils.filters import fmt_iso_local, format_currency


def payload() -> dict:
    """JSON body if present, otherwise form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return {k: v for k, v in request.form.items()}


# -------- services bound to the current app --------
def ledger() -> RentalService:
    return RentalService(enforce_occupancy=current_app.config["ENFORCE_OCCUPANCY"])


def catalog() -> VehicleService:
    return VehicleService()


def users() -> UserService:
    return UserService()


def analytics() -> AnalyticsService:
    return AnalyticsService()


# -------- response shapes --------
def vehicle_json(vehicle: Vehicle, public: bool = False) -> dict:
    data = vehicle.to_dict()
    if public:
        data["image"] = full_image_url(vehicle.image, current_app.config["PUBLIC_BASE_URL"])
    return data


def receipt_json(rental: Rental) -> dict:
    """Rental record plus the formatted lines the receipt screen prints."""
    cfg = current_app.config
    symbol = cfg["CURRENCY_SYMBOL"]
    days = rental.number_of_days
    return {
        **rental.to_dict(),
        "display": {
            "bookedAt": fmt_iso_local(rental.created_at, cfg["DISPLAY_TIMEZONE"], use_12h=True),
            "pickupDate": fmt_iso_local(rental.pickup_date.isoformat()),
            "returnDate": fmt_iso_local(rental.return_date.isoformat()),
            "duration": f"{days} Day{'s' if days > 1 else ''}",
            "subtotal": f"Subtotal ({days} day{'s' if days > 1 else ''} × "
                        f"{format_currency(rental.daily_rate, symbol)}): "
                        f"{format_currency(rental.subtotal, symbol)}",
            "total": format_currency(rental.total_amount, symbol),
        },
    }
