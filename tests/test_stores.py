"""
Unit tests for the listing store and the distance helpers.
"""

import pytest
from sqlmodel import select

from conftest import make_listing
from models import FoodListing, ListingStatus, PickupRequest
from services.errors import NotFoundError
from services.geo import haversine_km, nearest_first
from services.stores import ListingStore


# =============================================================================
# ListingStore
# =============================================================================

class TestListingStore:

    def test_add_assigns_id_and_defaults(self, session, donor):
        store = ListingStore(session)
        listing = store.add(FoodListing(donor_id=donor.id, title="Bagels"))
        session.commit()

        assert listing.id is not None
        assert store.get_by_id(listing.id).status is ListingStatus.AVAILABLE
        assert [item.id for item in store.list_by_donor(donor.id)] == [listing.id]

    def test_delete_removes_listing_and_finished_requests(
        self, session, service, listing, receiver
    ):
        request = service.create_request(listing.id, receiver.id)
        service.cancel(request.id)

        ListingStore(session).delete(listing.id)
        session.commit()

        assert session.get(FoodListing, listing.id) is None
        assert session.exec(select(PickupRequest)).all() == []

    def test_delete_unknown_listing(self, session):
        with pytest.raises(NotFoundError):
            ListingStore(session).delete(404)

    def test_delete_leaves_other_listings(self, session, donor, listing):
        other = make_listing(session, donor, "Bread")

        ListingStore(session).delete(listing.id)
        session.commit()

        assert [item.id for item in ListingStore(session).list_by_donor(donor.id)] == [other.id]


# =============================================================================
# Distance
# =============================================================================

class TestDistance:

    def test_one_degree_of_longitude_at_equator(self):
        assert haversine_km(0, 0, 0, 1) == pytest.approx(111.19, abs=0.01)

    def test_same_point_is_zero(self):
        assert haversine_km(14.6, 121.0, 14.6, 121.0) == 0

    def test_nearest_first_filters_and_sorts(self, donor):
        far = FoodListing(donor_id=donor.id, title="Far", latitude=0.0, longitude=0.4)
        near = FoodListing(donor_id=donor.id, title="Near", latitude=0.0, longitude=0.1)
        out_of_range = FoodListing(donor_id=donor.id, title="Away", latitude=0.0, longitude=2.0)
        no_coords = FoodListing(donor_id=donor.id, title="Unknown")

        result = nearest_first([far, out_of_range, no_coords, near], 0.0, 0.0, max_km=50)

        assert [listing.title for listing in result] == ["Near", "Far"]

    def test_default_radius(self, donor):
        edge = FoodListing(donor_id=donor.id, title="Edge", latitude=0.0, longitude=0.44)
        beyond = FoodListing(donor_id=donor.id, title="Beyond", latitude=0.0, longitude=0.46)

        assert [listing.title for listing in nearest_first([edge, beyond], 0.0, 0.0)] == ["Edge"]
