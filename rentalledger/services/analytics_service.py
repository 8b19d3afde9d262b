from __future__ import annotations

from collections import Counter
from typing import Optional

from rentalledger.models.store import Store
from rentalledger.services.common import _store, round2
from rentalledger.utils.constants import Collection, RentalStatus


class AnalyticsService:
    """Aggregations for the admin dashboard."""

    def __init__(self, store: Optional[Store] = None) -> None:
        self._store = store

    @property
    def store(self) -> Store:
        return self._store or _store()

    def dashboard(self) -> dict:
        vehicles = self.store.query(Collection.VEHICLES)
        rentals = self.store.query(Collection.RENTALS)

        # Fleet (manual availability flag, as the console shows it)
        prices = [float(v.get("price") or 0) for v in vehicles]
        available = sum(1 for v in vehicles if v.get("available", True) is not False)

        # Rentals by status
        by_status = Counter(r.get("status") or RentalStatus.PENDING for r in rentals)
        revenue = sum(
            float(r.get("totalAmount") or 0)
            for r in rentals
            if r.get("status") == RentalStatus.COMPLETED
        )

        # Rentals per vehicle, labelled from the snapshot so deleted vehicles still show
        cnt = Counter(r.get("vehicleId") for r in rentals if r.get("vehicleId"))
        labels = {r.get("vehicleId"): r.get("vehicleName") or "" for r in rentals}
        labels.update({v["id"]: v.get("name") or "" for v in vehicles})
        rentals_by_vehicle = [
            {"vehicle_id": vid, "label": labels.get(vid) or vid[:6], "count": n}
            for vid, n in cnt.items()
        ]
        rentals_by_vehicle.sort(key=lambda x: (-x["count"], x["label"]))

        return {
            "total_vehicles": len(vehicles),
            "available_vehicles": available,
            "unavailable_vehicles": len(vehicles) - available,
            "average_price": round(sum(prices) / len(prices)) if prices else 0,
            "total_rentals": len(rentals),
            "pending_rentals": by_status.get(RentalStatus.PENDING, 0),
            "active_rentals": by_status.get(RentalStatus.ACTIVE, 0),
            "completed_rentals": by_status.get(RentalStatus.COMPLETED, 0),
            "cancelled_rentals": by_status.get(RentalStatus.CANCELLED, 0),
            "total_revenue": round2(revenue),
            "rentals_by_vehicle": rentals_by_vehicle,
        }
