from typing import Callable, List

from fastapi import APIRouter, HTTPException, status

from db import SessionDep
from schemas import LegacyStatusUpdate, RequestCreate, RequestView
from services import views
from services.errors import (
    ListingNotAvailableError,
    NotFoundError,
    PickupError,
    StaleStateError,
    ValidationError,
)
from services.transitions import PickupService
from .auth import UserRoleDep, ensure_role

router = APIRouter(tags=["requests"])

RECEIVER_ROLES = ("receiver", "ngo")


def _to_http(exc: PickupError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (StaleStateError, ListingNotAvailableError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=exc.message)


def _load(session: SessionDep, request_id: int) -> RequestView:
    try:
        return views.request_detail(session, request_id)
    except NotFoundError as exc:
        raise _to_http(exc)


def _run(session: SessionDep, operation: Callable, *args) -> RequestView:
    try:
        request = operation(*args)
    except PickupError as exc:
        raise _to_http(exc)
    return views.request_detail(session, request.id)


def _ensure_listing_owner(view: RequestView, current: dict) -> None:
    ensure_role(current["role"], "donor")
    if current["role"] != "admin" and view.listing.donor_id != current["user"].id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage requests for your own listings.",
        )


def _ensure_requester(view: RequestView, current: dict) -> None:
    ensure_role(current["role"], *RECEIVER_ROLES)
    if current["role"] != "admin" and view.receiver_id != current["user"].id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own requests.",
        )


def _ensure_assigned_volunteer(view: RequestView, current: dict) -> None:
    ensure_role(current["role"], "volunteer")
    if current["role"] != "admin" and view.volunteer_id != current["user"].id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the assigned volunteer can update this delivery.",
        )


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[RequestView])
def all_requests(session: SessionDep, current: UserRoleDep):
    ensure_role(current["role"], "admin")
    return views.all_requests_admin(session)


@router.get("/mine", response_model=List[RequestView])
def my_requests(session: SessionDep, current: UserRoleDep):
    ensure_role(current["role"], *RECEIVER_ROLES)
    return views.requests_for_receiver(session, current["user"].id)


@router.get("/donor", response_model=List[RequestView])
def donor_requests(session: SessionDep, current: UserRoleDep):
    ensure_role(current["role"], "donor")
    return views.requests_for_donor(session, current["user"].id)


@router.get("/volunteer", response_model=List[RequestView])
def volunteer_requests(session: SessionDep, current: UserRoleDep):
    ensure_role(current["role"], "volunteer")
    return views.requests_for_volunteer(session, current["user"].id)


@router.get("/available", response_model=List[RequestView])
def volunteer_available(session: SessionDep, current: UserRoleDep):
    ensure_role(current["role"], "volunteer")
    return views.volunteer_available_requests(session)


@router.get("/pending", response_model=List[RequestView])
def pending(session: SessionDep, current: UserRoleDep):
    ensure_role(current["role"], "donor", "volunteer")
    return views.pending_requests(session)


@router.get("/{request_id}", response_model=RequestView)
def get_request(request_id: int, session: SessionDep, current: UserRoleDep):
    view = _load(session, request_id)
    user_id = current["user"].id
    involved = {view.receiver_id, view.volunteer_id, view.listing.donor_id}
    if current["role"] != "admin" and user_id not in involved:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not part of this request.",
        )
    return view


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


@router.post("/", response_model=RequestView, status_code=201)
def create_request(request_data: RequestCreate, session: SessionDep, current: UserRoleDep):
    ensure_role(current["role"], *RECEIVER_ROLES)
    service = PickupService(session)
    return _run(
        session,
        service.create_request,
        request_data.listing_id,
        current["user"].id,
        request_data.note,
    )


@router.post("/{request_id}/approve", response_model=RequestView)
def approve(request_id: int, session: SessionDep, current: UserRoleDep):
    _ensure_listing_owner(_load(session, request_id), current)
    return _run(session, PickupService(session).donor_approve, request_id)


@router.post("/{request_id}/reject", response_model=RequestView)
def reject(request_id: int, session: SessionDep, current: UserRoleDep):
    _ensure_listing_owner(_load(session, request_id), current)
    return _run(session, PickupService(session).donor_reject, request_id)


@router.post("/{request_id}/cancel", response_model=RequestView)
def cancel(request_id: int, session: SessionDep, current: UserRoleDep):
    _ensure_requester(_load(session, request_id), current)
    return _run(session, PickupService(session).cancel, request_id)


@router.post("/{request_id}/self-pickup", response_model=RequestView)
def self_pickup(request_id: int, session: SessionDep, current: UserRoleDep):
    _ensure_requester(_load(session, request_id), current)
    return _run(session, PickupService(session).receiver_self_pickup, request_id)


@router.post("/{request_id}/request-volunteer", response_model=RequestView)
def request_volunteer(request_id: int, session: SessionDep, current: UserRoleDep):
    _ensure_requester(_load(session, request_id), current)
    return _run(session, PickupService(session).request_volunteer, request_id)


@router.post("/{request_id}/volunteer-accept", response_model=RequestView)
def volunteer_accept(request_id: int, session: SessionDep, current: UserRoleDep):
    ensure_role(current["role"], "volunteer")
    _load(session, request_id)
    return _run(
        session,
        PickupService(session).volunteer_accept,
        request_id,
        current["user"].id,
    )


@router.post("/{request_id}/picked-up", response_model=RequestView)
def picked_up(request_id: int, session: SessionDep, current: UserRoleDep):
    _ensure_assigned_volunteer(_load(session, request_id), current)
    return _run(session, PickupService(session).volunteer_picked_up, request_id)


@router.post("/{request_id}/delivered", response_model=RequestView)
def delivered(request_id: int, session: SessionDep, current: UserRoleDep):
    _ensure_assigned_volunteer(_load(session, request_id), current)
    return _run(session, PickupService(session).volunteer_delivered, request_id)


@router.post("/{request_id}/confirm", response_model=RequestView)
def confirm(request_id: int, session: SessionDep, current: UserRoleDep):
    _ensure_requester(_load(session, request_id), current)
    return _run(session, PickupService(session).receiver_confirm, request_id)


@router.patch("/{request_id}", response_model=RequestView, deprecated=True)
def update_request_status(
    request_id: int,
    update: LegacyStatusUpdate,
    session: SessionDep,
    current: UserRoleDep,
):
    """
    Old single-endpoint status update, kept for clients of the
    pending/accepted/picked_up/delivered/cancelled model.
    """
    view = _load(session, request_id)
    if update.status == "cancelled":
        _ensure_requester(view, current)
    else:
        _ensure_assigned_volunteer(view, current)
    return _run(
        session,
        PickupService(session).update_request_status,
        request_id,
        update.status,
    )
