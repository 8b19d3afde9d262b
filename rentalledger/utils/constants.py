# rentalledger/utils/constants.py

"""
Global constants for roles, statuses, collections and vehicle types.
These constants are imported by both models and services.
"""


class Collection:
    USERS = "users"
    VEHICLES = "vehicles"
    RENTALS = "rentals"


class Role:
    USER = "user"
    ADMIN = "admin"


class RentalStatus:
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = (PENDING, ACTIVE, COMPLETED, CANCELLED)
    # A rental in one of these states occupies its vehicle.
    OPEN = (PENDING, ACTIVE)
    TERMINAL = (COMPLETED, CANCELLED)

    # Legal forward edges; anything else is an invalid transition.
    TRANSITIONS = {
        PENDING: frozenset({ACTIVE, CANCELLED}),
        ACTIVE: frozenset({COMPLETED}),
        COMPLETED: frozenset(),
        CANCELLED: frozenset(),
    }


class SessionKind:
    CUSTOMER = "customer"
    ADMIN = "admin"


# --- Vehicles ---
PLACEHOLDER = "/img/placeholder.png"

# Snapshot used when the catalog lookup fails at booking time
UNKNOWN_VEHICLE = {
    "vehicleName": "Unknown Vehicle",
    "vehicleImage": "",
    "vehicleType": "Vehicle",
    "dailyRate": 0,
}

CONFIRMATION_PREFIX = "VR"
