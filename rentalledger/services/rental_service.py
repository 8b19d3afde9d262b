"""Rental ledger: booking, status transitions, derived availability and live feeds."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from rentalledger.exceptions import (
    AccessDeniedError,
    InvalidDateRangeError,
    InvalidTransitionError,
    MissingIndexError,
    RentalLedgerError,
    RentalNotFoundError,
    TransportError,
    ValidationError,
    VehicleNotFoundError,
    VehicleUnavailableError,
)
from rentalledger.models.rental import Rental
from rentalledger.models.store import Store
from rentalledger.models.subscription import Subscription
from rentalledger.models.user import UserBase
from rentalledger.models.vehicle import Vehicle
from rentalledger.services.common import (
    _store,
    as_date,
    generate_confirmation_number,
    now_iso,
    number_of_days,
    rental_amount,
    text,
)
from rentalledger.services.vehicle_service import VehicleService
from rentalledger.utils.constants import UNKNOWN_VEHICLE, Collection, RentalStatus

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 5


@dataclass
class BookingRequest:
    """What a booking surface collects before asking the ledger for a rental."""

    vehicle_id: str
    user_id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    pickup_date: Any
    return_date: Any
    confirmation_number: Optional[str] = None

    @classmethod
    def for_user(cls, user: UserBase, vehicle_id: str, pickup_date, return_date,
                 name: Optional[str] = None, phone: Optional[str] = None,
                 confirmation_number: Optional[str] = None) -> "BookingRequest":
        """
        Build a request from the signed-in profile. The booking form may
        override name and phone; the email always comes from the account.
        """
        return cls(
            vehicle_id=vehicle_id,
            user_id=user.uid,
            customer_name=text(name, "name") or user.name or "",
            customer_email=user.email,
            customer_phone=text(phone, "phone") or user.phone or "",
            pickup_date=pickup_date,
            return_date=return_date,
            confirmation_number=confirmation_number,
        )


def _newest_first(rentals: list[Rental]) -> list[Rental]:
    return sorted(rentals, key=lambda r: r.sort_key, reverse=True)


class RentalService:
    """
    The rental ledger. Owns rental creation, the status state machine and
    the derived-availability join over the vehicle catalog.

    With ``enforce_occupancy`` (the default) a booking is written in the same
    transaction that re-reads the vehicle's open rentals, so two bookings can
    never both hold a vehicle.
    """

    def __init__(self, store: Optional[Store] = None, vehicles: Optional[VehicleService] = None,
                 enforce_occupancy: bool = True) -> None:
        self._store = store
        self._vehicles = vehicles
        self.enforce_occupancy = enforce_occupancy

    @property
    def store(self) -> Store:
        return self._store or _store()

    @property
    def vehicles(self) -> VehicleService:
        return self._vehicles or VehicleService(self._store)

    # --------------- Commands ---------------
    def create_rental(self, request: BookingRequest) -> str:
        """Create a rental and return its confirmation number."""
        return self.create_rental_record(request).confirmation_number

    def create_rental_record(self, request: BookingRequest) -> Rental:
        """
        Validate the booking, snapshot the vehicle and renter, and persist a
        pending rental.

        Raises:
            ValidationError: missing renter fields or a duplicate supplied code.
            InvalidDateRangeError: unparseable dates or return not after pickup.
            VehicleUnavailableError: the vehicle already has an open rental.
            TransportError: the write could not be persisted.
        """
        pickup, ret = self._validate(request)
        days = number_of_days(pickup, ret)
        snapshot = self._vehicle_snapshot(request.vehicle_id)
        amount = rental_amount(snapshot["dailyRate"], days)

        with self.store.transaction() as tx:
            if self.enforce_occupancy:
                self._check_occupancy(tx, request.vehicle_id)
            code = self._confirmation_number(tx, request.confirmation_number)
            now = now_iso()
            doc = {
                "confirmationNumber": code,
                "vehicleId": str(request.vehicle_id),
                **snapshot,
                "userId": str(request.user_id),
                "customerName": request.customer_name.strip(),
                "customerEmail": request.customer_email.strip(),
                "customerPhone": request.customer_phone.strip(),
                "pickupDate": pickup.isoformat(),
                "returnDate": ret.isoformat(),
                "numberOfDays": days,
                "subtotal": amount,
                "totalAmount": amount,
                "status": RentalStatus.PENDING,
                "createdAt": now,
                "updatedAt": now,
            }
            rid = tx.add(Collection.RENTALS, doc)

        logger.info("Rental %s created for vehicle %s (%s, %d day(s))",
                    code, request.vehicle_id, pickup.isoformat(), days)
        return Rental.from_doc({"id": rid, **doc})

    def set_status(self, rental_id: str, new_status: str) -> Rental:
        """
        Move a rental along the state machine. The status is re-read and
        written in one transaction; only ``updatedAt`` changes besides it.
        """
        new_status = text(new_status, "status").lower()
        if new_status not in RentalStatus.ALL:
            raise ValidationError(f"Error: unknown rental status '{new_status}'")

        with self.store.transaction() as tx:
            doc = tx.get(Collection.RENTALS, rental_id)
            if doc is None:
                raise RentalNotFoundError(f"Error: rental '{rental_id}' not found")
            rental = Rental.from_doc(doc)
            if rental.is_terminal:
                raise InvalidTransitionError(
                    f"Error: rental {rental.confirmation_number} is already {rental.status}"
                )
            if not rental.can_transition(new_status):
                raise InvalidTransitionError(
                    f"Error: cannot move rental from {rental.status} to {new_status}"
                )
            now = now_iso()
            tx.update(Collection.RENTALS, rental_id, {"status": new_status, "updatedAt": now})

        logger.info("Rental %s: %s -> %s", rental.confirmation_number, rental.status, new_status)
        return Rental.from_doc({**doc, "status": new_status, "updatedAt": now})

    def approve(self, rental_id: str) -> Rental:
        """Vehicle handed over: pending -> active."""
        return self.set_status(rental_id, RentalStatus.ACTIVE)

    def complete(self, rental_id: str) -> Rental:
        """Vehicle returned: active -> completed."""
        return self.set_status(rental_id, RentalStatus.COMPLETED)

    def cancel(self, rental_id: str, requester: Optional[UserBase] = None) -> Rental:
        """
        pending -> cancelled. When ``requester`` is given it must be allowed
        to act on the rental (its owner or an admin).
        """
        if requester is not None:
            rental = self.get_rental(rental_id)
            if not requester.can_manage(rental):
                raise AccessDeniedError("Error: not allowed to cancel this rental")
        return self.set_status(rental_id, RentalStatus.CANCELLED)

    def delete_rental(self, rental_id: str) -> None:
        """Hard delete; there is no soft delete or audit trail."""
        if not self.store.delete(Collection.RENTALS, rental_id):
            raise RentalNotFoundError(f"Error: rental '{rental_id}' not found")
        logger.warning("Rental %s deleted", rental_id)

    # --------------- Queries ---------------
    def get_rental(self, rental_id: str) -> Rental:
        doc = self.store.get(Collection.RENTALS, rental_id)
        if doc is None:
            raise RentalNotFoundError(f"Error: rental '{rental_id}' not found")
        return Rental.from_doc(doc)

    def find_by_confirmation(self, confirmation_number: str) -> Rental:
        code = text(confirmation_number, "confirmation number").upper()
        docs = self.store.query(Collection.RENTALS, where=[("confirmationNumber", "==", code)])
        if not docs:
            raise RentalNotFoundError(f"Error: no rental with confirmation number '{code}'")
        return Rental.from_doc(docs[0])

    def list_rentals(self, status: Optional[str] = None) -> list[Rental]:
        """All rentals newest first, optionally narrowed to one status."""
        if status is not None and status not in RentalStatus.ALL:
            raise ValidationError(f"Error: unknown rental status '{status}'")
        docs = self.store.query(Collection.RENTALS, order_by="createdAt", descending=True)
        rentals = [Rental.from_doc(d) for d in docs]
        if status is not None:
            rentals = [r for r in rentals if r.status == status]
        return rentals

    def status_counts(self) -> dict[str, int]:
        counts = dict.fromkeys(RentalStatus.ALL, 0)
        for doc in self.store.query(Collection.RENTALS):
            status = doc.get("status") or RentalStatus.PENDING
            counts[status] = counts.get(status, 0) + 1
        return counts

    def user_rentals(self, user_id: str) -> list[Rental]:
        """One-shot read of a renter's rentals, newest first."""
        where = [("userId", "==", str(user_id))]
        try:
            docs = self.store.query(Collection.RENTALS, where=where,
                                    order_by="createdAt", descending=True)
        except MissingIndexError as e:
            logger.info("Ordered rentals query unavailable (%s); sorting in memory", e)
            return _newest_first([Rental.from_doc(d) for d in self.store.query(Collection.RENTALS, where=where)])
        return [Rental.from_doc(d) for d in docs]

    def occupied_vehicle_ids(self) -> set[str]:
        """Ids of vehicles held by a pending or active rental."""
        docs = self.store.query(Collection.RENTALS, where=[("status", "in", RentalStatus.OPEN)])
        return {str(d.get("vehicleId")) for d in docs if d.get("vehicleId")}

    def list_available_vehicles(self, vehicle_type: Optional[str] = None) -> list[Vehicle]:
        """
        Catalog minus vehicles with an open rental, minus vehicles the admin
        switched off. Recomputed on every call. If rentals cannot be read the
        unfiltered catalog is returned.
        """
        vehicles = self.vehicles.list(vehicle_type)
        try:
            occupied = self.occupied_vehicle_ids()
        except TransportError as e:
            logger.warning("Could not read rentals, returning all vehicles: %s", e)
            return vehicles
        return [v for v in vehicles if str(v.id) not in occupied and v.available is not False]

    def subscribe_to_user_rentals(self, user_id: str,
                                  callback: Callable[[list[Rental]], None]) -> Subscription:
        """
        Push the renter's full rental list, newest first, now and after every
        change to any of their rentals. Cancel the returned handle to stop.
        """
        where = [("userId", "==", str(user_id))]

        def deliver(docs):
            callback([Rental.from_doc(d) for d in docs])

        try:
            return self.store.watch(Collection.RENTALS, deliver, where=where,
                                    order_by="createdAt", descending=True)
        except MissingIndexError as e:
            logger.info("Ordered rentals watch unavailable (%s); retrying without ordering", e)

        def deliver_sorted(docs):
            callback(_newest_first([Rental.from_doc(d) for d in docs]))

        return self.store.watch(Collection.RENTALS, deliver_sorted, where=where)

    # --------------- helpers ---------------
    @staticmethod
    def _validate(request: BookingRequest):
        ids = (("vehicle id", request.vehicle_id), ("user id", request.user_id))
        renter = (
            ("customer name", request.customer_name),
            ("customer email", request.customer_email),
            ("customer phone", request.customer_phone),
        )
        missing = [label for label, value in ids if not str(value or "").strip()]
        missing += [label for label, value in renter if not text(value, label)]
        if missing:
            raise ValidationError(f"Error: missing required booking fields: {', '.join(missing)}")

        pickup = as_date(request.pickup_date)
        ret = as_date(request.return_date)
        if ret <= pickup:
            raise InvalidDateRangeError("Error: return date must be after pickup date")
        return pickup, ret

    def _vehicle_snapshot(self, vehicle_id: str) -> dict:
        try:
            return self.vehicles.get(vehicle_id).snapshot()
        except (VehicleNotFoundError, TransportError) as e:
            logger.warning("Vehicle %s lookup failed (%s); booking with a placeholder snapshot",
                           vehicle_id, e)
            return dict(UNKNOWN_VEHICLE)

    @staticmethod
    def _check_occupancy(tx, vehicle_id: str) -> None:
        holding = tx.query(Collection.RENTALS, where=[
            ("vehicleId", "==", str(vehicle_id)),
            ("status", "in", RentalStatus.OPEN),
        ])
        if holding:
            raise VehicleUnavailableError(
                f"Error: vehicle '{vehicle_id}' is already reserved"
            )

    @staticmethod
    def _confirmation_number(tx, supplied: Optional[str]) -> str:
        def taken(code):
            return bool(tx.query(Collection.RENTALS, where=[("confirmationNumber", "==", code)]))

        code = text(supplied, "confirmation number").upper()
        if code:
            if taken(code):
                raise ValidationError(f"Error: confirmation number '{code}' is already in use")
            return code

        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_confirmation_number()
            if not taken(code):
                return code
        raise RentalLedgerError("Error: could not allocate a confirmation number")
