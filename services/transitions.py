"""
Pickup-request state machine.

Every operation reads the request, checks its status against the states the
operation may start from, and then writes with a conditional UPDATE on
(id, prior status). The request write and any listing write share one
transaction; notifications go out only after it commits and can never undo
it.

    pending -> donor_approved -> volunteer_requested -> volunteer_accepted
                              \                                 |
                               `-> picked_up (self pickup)   picked_up
                                        |                       |
                                        |                   delivered
                                        `--------> confirmed <--'

    pending | donor_approved -> cancelled
"""

import logging
import warnings
from typing import Callable, Iterable, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from models import FoodListing, ListingStatus, PickupRequest, RequestStatus, User
from .errors import (
    ListingNotAvailableError,
    NotFoundError,
    PickupError,
    StaleStateError,
    ValidationError,
)
from .notification_rules import Transition, render, rules_for
from .stores import ListingStore, NotificationSink, RequestLedger

logger = logging.getLogger(__name__)

ListingChange = Tuple[ListingStatus, ListingStatus]

RELEASE_LISTING: ListingChange = (ListingStatus.CLAIMED, ListingStatus.AVAILABLE)
COMPLETE_LISTING: ListingChange = (ListingStatus.CLAIMED, ListingStatus.COMPLETED)


def _require_id(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer")
    return value


class PickupService:
    def __init__(self, session: Session, notifications: Optional[NotificationSink] = None):
        self.session = session
        self.listings = ListingStore(session)
        self.requests = RequestLedger(session)
        self.notifications = notifications or NotificationSink(session)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_request(
        self, listing_id: int, receiver_id: int, note: Optional[str] = None
    ) -> PickupRequest:
        """
        Claim an available listing for a receiver.

        The listing is flipped to `claimed` only if it is still `available`,
        so of two concurrent claims exactly one wins; the loser gets
        ListingNotAvailableError.
        """
        _require_id(listing_id, "listing_id")
        _require_id(receiver_id, "receiver_id")
        note = (note or "").strip() or None

        try:
            listing = self.listings.get_by_id(listing_id)
            if self.session.get(User, receiver_id) is None:
                raise NotFoundError("User", receiver_id)
            if listing.donor_id == receiver_id:
                raise ValidationError("Donors cannot request their own listing")

            claimed = self.listings.update_status(
                listing_id, ListingStatus.CLAIMED, expected=ListingStatus.AVAILABLE
            )
            if not claimed:
                current = self.listings.get_by_id(listing_id).status
                raise ListingNotAvailableError(listing_id, current.value)

            request = self.requests.insert(
                PickupRequest(listing_id=listing_id, receiver_id=receiver_id, note=note)
            )
            self.session.commit()
        except (PickupError, SQLAlchemyError):
            self.session.rollback()
            raise

        logger.info(
            "Request %s created: listing %s claimed by user %s",
            request.id,
            listing_id,
            receiver_id,
        )
        self._notify(Transition.CREATE, request, listing)
        return request

    # ------------------------------------------------------------------
    # Donor
    # ------------------------------------------------------------------

    def donor_approve(self, request_id: int) -> PickupRequest:
        return self._advance(
            Transition.DONOR_APPROVE,
            request_id,
            (RequestStatus.PENDING,),
            RequestStatus.DONOR_APPROVED,
        )

    def donor_reject(self, request_id: int) -> PickupRequest:
        return self._advance(
            Transition.DONOR_REJECT,
            request_id,
            (RequestStatus.PENDING, RequestStatus.DONOR_APPROVED),
            RequestStatus.CANCELLED,
            listing_change=RELEASE_LISTING,
        )

    # ------------------------------------------------------------------
    # Receiver
    # ------------------------------------------------------------------

    def cancel(self, request_id: int) -> PickupRequest:
        return self._advance(
            Transition.CANCEL,
            request_id,
            (RequestStatus.PENDING, RequestStatus.DONOR_APPROVED),
            RequestStatus.CANCELLED,
            listing_change=RELEASE_LISTING,
        )

    def receiver_self_pickup(self, request_id: int) -> PickupRequest:
        return self._advance(
            Transition.SELF_PICKUP,
            request_id,
            (RequestStatus.DONOR_APPROVED,),
            RequestStatus.PICKED_UP,
            self_pickup=True,
        )

    def request_volunteer(self, request_id: int) -> PickupRequest:
        return self._advance(
            Transition.REQUEST_VOLUNTEER,
            request_id,
            (RequestStatus.DONOR_APPROVED,),
            RequestStatus.VOLUNTEER_REQUESTED,
        )

    def receiver_confirm(self, request_id: int) -> PickupRequest:
        def guard(request: PickupRequest) -> None:
            # A volunteer-leg pickup must be delivered before it is confirmed.
            if request.status is RequestStatus.PICKED_UP and not request.self_pickup:
                raise StaleStateError(
                    request.id, "picked_up (volunteer)", "delivered or self pickup"
                )

        return self._advance(
            Transition.RECEIVER_CONFIRM,
            request_id,
            (RequestStatus.PICKED_UP, RequestStatus.DELIVERED),
            RequestStatus.CONFIRMED,
            listing_change=COMPLETE_LISTING,
            guard=guard,
        )

    # ------------------------------------------------------------------
    # Volunteer
    # ------------------------------------------------------------------

    def volunteer_accept(self, request_id: int, volunteer_id: int) -> PickupRequest:
        _require_id(volunteer_id, "volunteer_id")

        def guard(request: PickupRequest) -> None:
            if self.session.get(User, volunteer_id) is None:
                raise NotFoundError("User", volunteer_id)

        return self._advance(
            Transition.VOLUNTEER_ACCEPT,
            request_id,
            (RequestStatus.VOLUNTEER_REQUESTED,),
            RequestStatus.VOLUNTEER_ACCEPTED,
            guard=guard,
            volunteer_id=volunteer_id,
        )

    def volunteer_picked_up(self, request_id: int) -> PickupRequest:
        return self._advance(
            Transition.VOLUNTEER_PICKED_UP,
            request_id,
            (RequestStatus.VOLUNTEER_ACCEPTED,),
            RequestStatus.PICKED_UP,
        )

    def volunteer_delivered(self, request_id: int) -> PickupRequest:
        def guard(request: PickupRequest) -> None:
            if request.self_pickup:
                raise StaleStateError(
                    request.id, "picked_up (self pickup)", "picked_up (volunteer)"
                )

        return self._advance(
            Transition.VOLUNTEER_DELIVERED,
            request_id,
            (RequestStatus.PICKED_UP,),
            RequestStatus.DELIVERED,
            guard=guard,
        )

    # ------------------------------------------------------------------
    # Deprecated 5-state API (pending/accepted/picked_up/delivered/cancelled)
    # ------------------------------------------------------------------

    def accept_request(self, request_id: int, volunteer_id: int) -> PickupRequest:
        warnings.warn(
            "accept_request() is deprecated; use volunteer_accept()",
            DeprecationWarning,
            stacklevel=2,
        )
        return self.volunteer_accept(request_id, volunteer_id)

    def update_request_status(self, request_id: int, status: str) -> PickupRequest:
        warnings.warn(
            "update_request_status() is deprecated; use the named transitions",
            DeprecationWarning,
            stacklevel=2,
        )
        legacy = {
            "picked_up": self.volunteer_picked_up,
            "delivered": self.volunteer_delivered,
            "cancelled": self.cancel,
        }
        operation = legacy.get(status)
        if operation is None:
            raise ValidationError(
                f"Unsupported status {status!r}; expected one of {sorted(legacy)}"
            )
        return operation(request_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _advance(
        self,
        transition: Transition,
        request_id: int,
        allowed_from: Iterable[RequestStatus],
        new_status: RequestStatus,
        listing_change: Optional[ListingChange] = None,
        guard: Optional[Callable[[PickupRequest], None]] = None,
        **extra_fields,
    ) -> PickupRequest:
        _require_id(request_id, "request_id")
        allowed_from = tuple(allowed_from)

        try:
            request = self.requests.get_by_id(request_id)
            prior = request.status
            if prior not in allowed_from:
                raise StaleStateError(
                    request_id, prior.value, "/".join(s.value for s in allowed_from)
                )
            if guard is not None:
                guard(request)

            request = self.requests.update_status(
                request_id, prior, new_status, **extra_fields
            )
            listing = self.listings.get_by_id(request.listing_id)
            if listing_change is not None:
                self._move_listing(listing, *listing_change)
            self.session.commit()
        except (PickupError, SQLAlchemyError):
            self.session.rollback()
            raise

        logger.info(
            "Request %s: %s -> %s (%s)",
            request_id,
            prior.value,
            new_status.value,
            transition.value,
        )
        self._notify(transition, request, listing)
        return request

    def _move_listing(
        self, listing: FoodListing, expected: ListingStatus, new_status: ListingStatus
    ) -> None:
        if not self.listings.update_status(listing.id, new_status, expected=expected):
            # Expired or otherwise moved out of band; the request still advances.
            logger.warning(
                "Listing %s is %s, not %s; left unchanged instead of moving to %s",
                listing.id,
                listing.status.value,
                expected.value,
                new_status.value,
            )

    def _notify(
        self, transition: Transition, request: PickupRequest, listing: FoodListing
    ) -> None:
        recipients = {
            "donor": listing.donor_id,
            "receiver": request.receiver_id,
            "volunteer": request.volunteer_id,
        }
        status = request.status.value
        data = {
            "listing_title": listing.title,
            "listing_id": listing.id,
            "request_id": request.id,
        }
        for rule in rules_for(transition):
            user_id = recipients[rule.recipient]
            if user_id is None:
                continue
            title, body, link = render(rule, data)
            try:
                self.notifications.append(user_id, rule.type, title, body, link)
            except Exception:
                # The transition is already committed.
                logger.exception(
                    "Notification %r for user %s failed after request %s moved to %s",
                    rule.type,
                    user_id,
                    request.id,
                    status,
                )
