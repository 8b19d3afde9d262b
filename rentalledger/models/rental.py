from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime, timezone
from typing import Optional

from rentalledger.utils.constants import RentalStatus

# Python attribute -> stored field name. The stored shape is shared with
# existing data, so these names must not change.
FIELD_MAP = {
    "confirmation_number": "confirmationNumber",
    "vehicle_id": "vehicleId",
    "vehicle_name": "vehicleName",
    "vehicle_image": "vehicleImage",
    "vehicle_type": "vehicleType",
    "daily_rate": "dailyRate",
    "user_id": "userId",
    "customer_name": "customerName",
    "customer_email": "customerEmail",
    "customer_phone": "customerPhone",
    "pickup_date": "pickupDate",
    "return_date": "returnDate",
    "number_of_days": "numberOfDays",
    "subtotal": "subtotal",
    "total_amount": "totalAmount",
    "status": "status",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _to_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).split("T", 1)[0])


def _to_datetime(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class Rental:
    """A booking tying a renter to a vehicle for a date range."""

    id: Optional[str]
    confirmation_number: str
    vehicle_id: str
    vehicle_name: str
    vehicle_image: str
    vehicle_type: str
    daily_rate: float
    user_id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    pickup_date: date
    return_date: date
    number_of_days: int
    subtotal: float
    total_amount: float
    status: str = RentalStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # ---------- state machine ----------
    @property
    def is_open(self) -> bool:
        """True while the rental occupies its vehicle."""
        return self.status in RentalStatus.OPEN

    @property
    def is_terminal(self) -> bool:
        return self.status in RentalStatus.TERMINAL

    def can_transition(self, new_status: str) -> bool:
        return new_status in RentalStatus.TRANSITIONS.get(self.status, frozenset())

    @property
    def sort_key(self) -> datetime:
        return self.created_at or _EPOCH

    # ---------- mapping ----------
    @classmethod
    def from_doc(cls, doc: dict) -> "Rental":
        values = {"id": doc.get("id")}
        for attr, key in FIELD_MAP.items():
            values[attr] = doc.get(key)
        values["pickup_date"] = _to_date(values["pickup_date"])
        values["return_date"] = _to_date(values["return_date"])
        values["created_at"] = _to_datetime(values["created_at"])
        values["updated_at"] = _to_datetime(values["updated_at"])
        values["status"] = values["status"] or RentalStatus.PENDING
        for text in ("confirmation_number", "vehicle_id", "vehicle_name", "vehicle_image",
                     "vehicle_type", "user_id", "customer_name", "customer_email", "customer_phone"):
            values[text] = values[text] or ""
        for number in ("daily_rate", "subtotal", "total_amount"):
            values[number] = values[number] or 0
        values["number_of_days"] = values["number_of_days"] or 1
        return cls(**values)

    def to_doc(self) -> dict:
        doc = {}
        for f in fields(self):
            if f.name == "id":
                continue
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, date):
                value = value.isoformat()
            doc[FIELD_MAP[f.name]] = value
        return doc

    def to_dict(self) -> dict:
        return {"id": self.id, **self.to_doc()}
