"""
Exclusive occupancy tests for rental creation. A vehicle with a pending or
active rental cannot be booked again, regardless of the requested dates,
until that rental is completed or cancelled.
"""
import threading

import pytest

from rentalledger.exceptions import VehicleUnavailableError
from rentalledger.services.rental_service import RentalService


def test_open_rental_blocks_second_booking(ledger, add_vehicle, booking):
    """
    Given a pending rental from 2030-11-01 to 2030-11-05, a second booking
    for the same vehicle fails even for dates that do not overlap.
    """
    v = add_vehicle()
    ledger.create_rental_record(booking(v.id, pickup="2030-11-01", ret="2030-11-05"))

    with pytest.raises(VehicleUnavailableError):
        ledger.create_rental_record(booking(v.id, user_id="u2", pickup="2030-12-01", ret="2030-12-03"))
    assert len(ledger.list_rentals()) == 1


def test_active_rental_blocks_booking(ledger, add_vehicle, booking):
    v = add_vehicle()
    r = ledger.create_rental_record(booking(v.id))
    ledger.approve(r.id)

    with pytest.raises(VehicleUnavailableError):
        ledger.create_rental_record(booking(v.id, user_id="u2"))


@pytest.mark.parametrize("close", ["cancel", "complete"])
def test_closed_rental_frees_vehicle(ledger, add_vehicle, booking, close):
    v = add_vehicle()
    r = ledger.create_rental_record(booking(v.id))
    if close == "complete":
        ledger.approve(r.id)
        ledger.complete(r.id)
    else:
        ledger.cancel(r.id)

    again = ledger.create_rental_record(booking(v.id, user_id="u2"))
    assert again.status == "pending"


def test_other_vehicles_are_unaffected(ledger, add_vehicle, booking):
    a = add_vehicle("A")
    b = add_vehicle("B")
    ledger.create_rental_record(booking(a.id))
    assert ledger.create_rental_record(booking(b.id)).vehicle_id == b.id


def test_without_enforcement_double_booking_is_possible(store, catalog, add_vehicle, booking):
    """The unguarded mode lets two open rentals hold one vehicle."""
    lax = RentalService(store, catalog, enforce_occupancy=False)
    v = add_vehicle()
    lax.create_rental_record(booking(v.id))
    lax.create_rental_record(booking(v.id, user_id="u2"))
    assert len(lax.list_rentals()) == 2
    assert lax.occupied_vehicle_ids() == {v.id}


def test_concurrent_bookings_only_one_wins(ledger, add_vehicle, booking):
    v = add_vehicle()
    barrier = threading.Barrier(4)
    results = []
    lock = threading.Lock()

    def attempt(uid):
        barrier.wait()
        try:
            ledger.create_rental_record(booking(v.id, user_id=uid))
            outcome = "ok"
        except VehicleUnavailableError:
            outcome = "taken"
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=attempt, args=(f"u{i}",)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results) == ["ok", "taken", "taken", "taken"]
    assert len(ledger.list_rentals()) == 1
