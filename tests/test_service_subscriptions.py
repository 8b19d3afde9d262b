"""
Live per-user rental feeds: the full list, newest first, on subscribe and on
every change to one of the user's rentals. Without the composite index the
ledger falls back to an unordered watch and sorts in memory.
"""
import pytest

from rentalledger.services.rental_service import RentalService
from rentalledger.services.vehicle_service import VehicleService


def _created(rentals):
    return [r.created_at for r in rentals]


def _assert_newest_first(rentals):
    stamps = _created(rentals)
    assert all(a >= b for a, b in zip(stamps, stamps[1:]))


def test_initial_delivery_and_updates(ledger, add_vehicle, booking, clock):
    a = add_vehicle("A")
    b = add_vehicle("B")
    first = ledger.create_rental_record(booking(a.id))

    seen = []
    sub = ledger.subscribe_to_user_rentals("u1", seen.append)
    assert [[r.id for r in batch] for batch in seen] == [[first.id]]

    second = ledger.create_rental_record(booking(b.id))
    assert [r.id for r in seen[-1]] == [second.id, first.id]

    ledger.approve(first.id)
    assert [r.status for r in seen[-1]] == ["pending", "active"]
    sub.cancel()


def test_other_users_changes_not_delivered(ledger, add_vehicle, booking, clock):
    seen = []
    ledger.subscribe_to_user_rentals("u1", seen.append)
    assert seen == [[]]

    other = ledger.create_rental_record(booking(add_vehicle("A").id, user_id="u2"))
    ledger.approve(other.id)
    assert seen == [[]]


def test_cancelled_subscription_stops_delivery(ledger, store, add_vehicle, booking, clock):
    seen = []
    sub = ledger.subscribe_to_user_rentals("u1", seen.append)
    assert store.watch_count("rentals") == 1

    sub.cancel()
    sub.cancel()
    assert not sub.active
    assert store.watch_count("rentals") == 0

    ledger.create_rental_record(booking(add_vehicle("A").id))
    assert len(seen) == 1


def test_subscription_handle_is_callable_and_a_context_manager(ledger, store):
    with ledger.subscribe_to_user_rentals("u1", lambda rentals: None):
        assert store.watch_count("rentals") == 1
    assert store.watch_count("rentals") == 0

    dispose = ledger.subscribe_to_user_rentals("u1", lambda rentals: None)
    dispose()
    assert store.watch_count("rentals") == 0


@pytest.fixture
def unindexed_ledger(bare_store):
    return RentalService(bare_store, VehicleService(bare_store))


def test_fallback_without_index_still_sorted(unindexed_ledger, booking, clock):
    """
    Rentals created in the order t1, t3, t2 (by stored createdAt) arrive
    newest first even though the store cannot order the watch.
    """
    store = unindexed_ledger.store
    ids = {}
    for name, created in [("t1", "2025-01-01T00:00:00+00:00"),
                          ("t3", "2025-01-03T00:00:00+00:00"),
                          ("t2", "2025-01-02T00:00:00+00:00")]:
        ids[name] = store.add("rentals", {"userId": "u1", "status": "completed", "createdAt": created})

    seen = []
    sub = unindexed_ledger.subscribe_to_user_rentals("u1", seen.append)
    assert [r.id for r in seen[-1]] == [ids["t3"], ids["t2"], ids["t1"]]

    vid = store.add("vehicles", {"name": "A", "type": "sedan", "price": 10})
    unindexed_ledger.create_rental_record(booking(vid))
    _assert_newest_first(seen[-1])
    assert len(seen[-1]) == 4
    sub.cancel()


def test_user_rentals_one_shot_fallback(unindexed_ledger, booking, clock):
    store = unindexed_ledger.store
    a = store.add("vehicles", {"name": "A", "type": "sedan", "price": 10})
    b = store.add("vehicles", {"name": "B", "type": "sedan", "price": 10})
    first = unindexed_ledger.create_rental_record(booking(a))
    second = unindexed_ledger.create_rental_record(booking(b))

    assert [r.id for r in unindexed_ledger.user_rentals("u1")] == [second.id, first.id]
