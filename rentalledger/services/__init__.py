from .analytics_service import AnalyticsService
from .rental_service import BookingRequest, RentalService
from .user_service import UserService
from .vehicle_service import VehicleService

__all__ = [
    "RentalService",
    "BookingRequest",
    "VehicleService",
    "UserService",
    "AnalyticsService",
]
