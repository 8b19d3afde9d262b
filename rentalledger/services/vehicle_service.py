from __future__ import annotations

import logging
from typing import Iterable, Optional

from rentalledger.exceptions import ValidationError, VehicleNotFoundError
from rentalledger.models.store import Store
from rentalledger.models.vehicle import Vehicle
from rentalledger.services.common import _store, norm_type, text, to_float_safe, valid_image_path
from rentalledger.utils.constants import PLACEHOLDER, Collection

logger = logging.getLogger(__name__)


def _clean_fields(payload: dict, partial: bool) -> dict:
    """
    Validate and normalise catalog fields. With ``partial`` only the keys
    present in ``payload`` are checked; otherwise name, type and price are
    required.
    """
    out: dict = {}

    if "name" in payload or not partial:
        name = text(payload.get("name"), "vehicle name")
        if not name:
            raise ValidationError("Error: vehicle name is required")
        out["name"] = name

    if "type" in payload or not partial:
        vtype = norm_type(payload.get("type"))
        if not vtype:
            raise ValidationError("Error: vehicle type is required")
        out["type"] = vtype

    if "price" in payload or not partial:
        price = to_float_safe(payload.get("price"))
        if price is None or price <= 0:
            raise ValidationError("Error: price must be a positive number")
        out["price"] = int(price) if price.is_integer() else price

    if "image" in payload or not partial:
        img = text(payload.get("image"), "image")
        out["image"] = img if valid_image_path(img) else PLACEHOLDER

    if "rating" in payload or not partial:
        rating = to_float_safe(payload.get("rating"))
        out["rating"] = min(5.0, max(0.0, rating)) if rating is not None else 0.0

    if "description" in payload or not partial:
        out["description"] = text(payload.get("description"), "description")

    if "available" in payload or not partial:
        available = payload.get("available", True)
        if isinstance(available, str):
            available = available.strip().lower() not in ("false", "0", "no", "off", "")
        out["available"] = bool(available)

    return out


def filter_vehicles(vehicles: Iterable[Vehicle], keyword=None, min_price=None, max_price=None) -> list[Vehicle]:
    """
    Filter vehicles by name/description keyword and price range.
    Invalid min/max values are ignored; a reversed range is swapped.
    """
    res = list(vehicles)

    if keyword:
        kw = keyword.strip().lower()
        if kw:
            res = [v for v in res if kw in v.name.lower() or kw in v.description.lower()]

    min_val = to_float_safe(min_price)
    max_val = to_float_safe(max_price)
    if (min_val is not None) and (max_val is not None) and (min_val > max_val):
        min_val, max_val = max_val, min_val
    if min_val is not None:
        res = [v for v in res if v.price >= min_val]
    if max_val is not None:
        res = [v for v in res if v.price <= max_val]

    return res


class VehicleService:
    """Vehicle catalog: get, list, create, update, delete."""

    def __init__(self, store: Optional[Store] = None) -> None:
        self._store = store

    @property
    def store(self) -> Store:
        return self._store or _store()

    def get(self, vehicle_id: str) -> Vehicle:
        """Return a vehicle by ID or raise VehicleNotFoundError."""
        doc = self.store.get(Collection.VEHICLES, vehicle_id)
        if doc is None:
            raise VehicleNotFoundError(f"Error: vehicle with ID '{vehicle_id}' not found")
        return Vehicle.from_doc(doc)

    def list(self, vehicle_type: Optional[str] = None) -> list[Vehicle]:
        where = [("type", "==", norm_type(vehicle_type))] if vehicle_type else []
        docs = self.store.query(Collection.VEHICLES, where=where)
        vehicles = [Vehicle.from_doc(d) for d in docs]
        vehicles.sort(key=lambda v: v.name.lower())
        return vehicles

    def create(self, payload: dict) -> Vehicle:
        fields = _clean_fields(payload, partial=False)
        vid = self.store.add(Collection.VEHICLES, fields)
        logger.info("Vehicle %s created (%s)", vid, fields["name"])
        return Vehicle.from_doc({"id": vid, **fields})

    def update(self, vehicle_id: str, payload: dict) -> Vehicle:
        """Apply a partial update; rentals keep their own snapshot of the old values."""
        fields = _clean_fields(payload, partial=True)
        if not fields:
            raise ValidationError("Error: nothing to update")
        if not self.store.update(Collection.VEHICLES, vehicle_id, fields):
            raise VehicleNotFoundError(f"Error: vehicle with ID '{vehicle_id}' not found")
        logger.info("Vehicle %s updated: %s", vehicle_id, ", ".join(sorted(fields)))
        return self.get(vehicle_id)

    def delete(self, vehicle_id: str) -> None:
        if not self.store.delete(Collection.VEHICLES, vehicle_id):
            raise VehicleNotFoundError(f"Error: vehicle with ID '{vehicle_id}' not found")
        logger.info("Vehicle %s deleted", vehicle_id)
