"""
Read-only, role-scoped projections of pickup requests.

Each view joins the request with a summary of its listing and returns the
newest request first. Nothing here writes, and an empty result is `[]`.
"""

from typing import List

from sqlmodel import Session

from models import RequestStatus
from schemas import ListingSummary, RequestView
from .labels import status_color, status_label
from .stores import RequestLedger, RequestRow


def project(row: RequestRow) -> RequestView:
    request, listing = row
    return RequestView(
        id=request.id,
        listing_id=request.listing_id,
        receiver_id=request.receiver_id,
        volunteer_id=request.volunteer_id,
        status=request.status,
        status_label=status_label(request.status),
        status_color=status_color(request.status),
        note=request.note,
        self_pickup=request.self_pickup,
        created_at=request.created_at,
        updated_at=request.updated_at,
        listing=ListingSummary.model_validate(listing),
    )


def request_detail(session: Session, request_id: int) -> RequestView:
    return project(RequestLedger(session).get_row(request_id))


def requests_for_receiver(session: Session, receiver_id: int) -> List[RequestView]:
    return [project(row) for row in RequestLedger(session).query_by_receiver(receiver_id)]


def requests_for_donor(session: Session, donor_id: int) -> List[RequestView]:
    """Requests on any listing the donor owns."""
    return [project(row) for row in RequestLedger(session).query_by_donor(donor_id)]


def requests_for_volunteer(session: Session, volunteer_id: int) -> List[RequestView]:
    return [project(row) for row in RequestLedger(session).query_by_volunteer(volunteer_id)]


def pending_requests(session: Session) -> List[RequestView]:
    rows = RequestLedger(session).query_by_status(RequestStatus.PENDING)
    return [project(row) for row in rows]


def volunteer_available_requests(session: Session) -> List[RequestView]:
    """Requests waiting for any volunteer to take the delivery."""
    rows = RequestLedger(session).query_by_status(RequestStatus.VOLUNTEER_REQUESTED)
    return [project(row) for row in rows]


def all_requests_admin(session: Session) -> List[RequestView]:
    return [project(row) for row in RequestLedger(session).query_all()]
