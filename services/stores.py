"""
Session-backed stores the pickup core reads and writes through.

Status writes are conditional UPDATEs keyed on both the id and the status
the caller expects; the row count tells whether the write won.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models import (
    ACTIVE_REQUEST_STATUSES,
    FoodListing,
    ListingStatus,
    Notification,
    PickupRequest,
    RequestStatus,
    utcnow,
)
from .errors import NotFoundError, NotificationDeliveryError, StaleStateError

logger = logging.getLogger(__name__)

RequestRow = Tuple[PickupRequest, FoodListing]


class ListingStore:
    def __init__(self, session: Session):
        self.session = session

    def add(self, listing: FoodListing) -> FoodListing:
        self.session.add(listing)
        self.session.flush()
        return listing

    def get_by_id(self, listing_id: int) -> FoodListing:
        listing = self.session.get(FoodListing, listing_id, populate_existing=True)
        if listing is None:
            raise NotFoundError("Listing", listing_id)
        return listing

    def delete(self, listing_id: int) -> None:
        """
        Remove a listing together with its finished requests. The caller
        checks for active requests and commits.
        """
        listing = self.get_by_id(listing_id)
        old_requests = self.session.exec(
            select(PickupRequest).where(PickupRequest.listing_id == listing_id)
        ).all()
        for req in old_requests:
            self.session.delete(req)
        self.session.flush()

        self.session.delete(listing)
        self.session.flush()

    def update_status(
        self,
        listing_id: int,
        new_status: ListingStatus,
        expected: Optional[ListingStatus] = None,
    ) -> bool:
        """
        Set the listing status, optionally only if it currently equals
        `expected`. Returns True when a row was written.
        """
        stmt = update(FoodListing).where(FoodListing.id == listing_id)
        if expected is not None:
            stmt = stmt.where(FoodListing.status == expected)
        stmt = stmt.values(status=new_status, updated_at=utcnow())
        result = self.session.exec(stmt)
        return result.rowcount == 1

    def list_by_status(self, status: ListingStatus) -> List[FoodListing]:
        stmt = (
            select(FoodListing)
            .where(FoodListing.status == status)
            .order_by(FoodListing.created_at.desc(), FoodListing.id.desc())
        )
        return list(self.session.exec(stmt).all())

    def list_by_donor(self, donor_id: int) -> List[FoodListing]:
        stmt = (
            select(FoodListing)
            .where(FoodListing.donor_id == donor_id)
            .order_by(FoodListing.created_at.desc(), FoodListing.id.desc())
        )
        return list(self.session.exec(stmt).all())


class RequestLedger:
    def __init__(self, session: Session):
        self.session = session

    def insert(self, request: PickupRequest) -> PickupRequest:
        self.session.add(request)
        self.session.flush()
        return request

    def get_by_id(self, request_id: int) -> PickupRequest:
        request = self.session.get(PickupRequest, request_id, populate_existing=True)
        if request is None:
            raise NotFoundError("Request", request_id)
        return request

    def update_status(
        self,
        request_id: int,
        expected_prior: RequestStatus,
        new_status: RequestStatus,
        **extra_fields,
    ) -> PickupRequest:
        """
        Move a request from `expected_prior` to `new_status`.

        Raises NotFoundError if the request is gone and StaleStateError if
        its stored status is no longer `expected_prior`. Nothing is written
        in either case.
        """
        stmt = (
            update(PickupRequest)
            .where(
                PickupRequest.id == request_id,
                PickupRequest.status == expected_prior,
            )
            .values(status=new_status, updated_at=utcnow(), **extra_fields)
        )
        result = self.session.exec(stmt)
        current = self.session.get(PickupRequest, request_id, populate_existing=True)
        if current is None:
            raise NotFoundError("Request", request_id)
        if result.rowcount != 1:
            raise StaleStateError(request_id, current.status.value, expected_prior.value)
        return current

    def _joined(self):
        return (
            select(PickupRequest, FoodListing)
            .join(FoodListing, FoodListing.id == PickupRequest.listing_id)
            .order_by(PickupRequest.created_at.desc(), PickupRequest.id.desc())
        )

    def _rows(self, stmt) -> List[RequestRow]:
        return [(req, listing) for req, listing in self.session.exec(stmt).all()]

    def get_row(self, request_id: int) -> RequestRow:
        rows = self._rows(self._joined().where(PickupRequest.id == request_id))
        if not rows:
            raise NotFoundError("Request", request_id)
        return rows[0]

    def query_by_receiver(self, receiver_id: int) -> List[RequestRow]:
        return self._rows(self._joined().where(PickupRequest.receiver_id == receiver_id))

    def query_by_donor(self, donor_id: int) -> List[RequestRow]:
        return self._rows(self._joined().where(FoodListing.donor_id == donor_id))

    def query_by_volunteer(self, volunteer_id: int) -> List[RequestRow]:
        return self._rows(self._joined().where(PickupRequest.volunteer_id == volunteer_id))

    def query_by_status(self, status: RequestStatus) -> List[RequestRow]:
        return self._rows(self._joined().where(PickupRequest.status == status))

    def query_all(self) -> List[RequestRow]:
        return self._rows(self._joined())

    def active_for_listing(self, listing_id: int) -> List[PickupRequest]:
        stmt = select(PickupRequest).where(
            PickupRequest.listing_id == listing_id,
            PickupRequest.status.in_(list(ACTIVE_REQUEST_STATUSES)),
        )
        return list(self.session.exec(stmt).all())


class NotificationSink:
    """Append-only writer for in-app notifications. Never raises."""

    def __init__(self, session: Session):
        self.session = session

    def append(
        self,
        user_id: int,
        type: str,
        title: str,
        body: Optional[str] = None,
        link: Optional[str] = None,
    ) -> Optional[Notification]:
        try:
            return self._write(user_id, type, title, body, link)
        except NotificationDeliveryError as exc:
            logger.warning(exc.message, exc_info=exc.__cause__)
            return None

    def _write(self, user_id, type, title, body, link) -> Notification:
        notification = Notification(
            user_id=user_id, type=type, title=title, body=body, link=link
        )
        try:
            self.session.add(notification)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise NotificationDeliveryError(
                f"Notification {type!r} for user {user_id} not delivered"
            ) from exc
        return notification
