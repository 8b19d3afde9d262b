"""
Unit tests for filter_vehicles: keyword matches on name/description and
price range filtering. These tests are pure-service and do not
depend on any HTTP routes or authentication.
"""

import pytest

from rentalledger.models.vehicle import Vehicle
from rentalledger.services.vehicle_service import filter_vehicles


@pytest.fixture
def fleet():
    return [
        Vehicle(id="1", name="Ford Mustang", type="sports", price=220, description="Iconic muscle"),
        Vehicle(id="2", name="City Glide", type="sedan", price=95, description="Great mileage"),
        Vehicle(id="3", name="Volt Runner", type="electric", price=150, description="Quiet and fast"),
        Vehicle(id="4", name="Land Cruiser", type="suv", price=190, description="Rugged"),
    ]


def test_filter_by_partial_name(fleet):
    """
    Should return the Mustang when searching by partial name (case-insensitive).
    """
    rows = filter_vehicles(fleet, keyword="musT")
    assert [r.name for r in rows] == ["Ford Mustang"]


def test_filter_matches_description(fleet):
    rows = filter_vehicles(fleet, keyword="mileage")
    assert [r.id for r in rows] == ["2"]


def test_filter_by_min_max_price(fleet):
    """
    Should filter by min/max price even if inputs are strings (simulating query strings).
    """
    rows = filter_vehicles(fleet, min_price="100", max_price="200")
    assert {r.name for r in rows} == {"Volt Runner", "Land Cruiser"}


def test_reversed_range_is_swapped(fleet):
    rows = filter_vehicles(fleet, min_price="200", max_price="100")
    assert {r.name for r in rows} == {"Volt Runner", "Land Cruiser"}


def test_filter_with_empty_params_returns_all(fleet):
    rows = filter_vehicles(fleet, keyword="", min_price=None, max_price=None)
    assert len(rows) == len(fleet)


def test_filter_ignores_invalid_min_max(fleet):
    """
    Invalid min/max values should be safely ignored instead of raising.
    """
    rows = filter_vehicles(fleet, min_price="not-a-number", max_price="n/a")
    assert len(rows) == len(fleet)
