# routers/users.py
from typing import List

from fastapi import APIRouter, HTTPException, Response
from sqlalchemy import or_
from sqlmodel import select
from .auth import UserRoleDep, ensure_role
from db import SessionDep
from models import (
    ACTIVE_REQUEST_STATUSES,
    FoodListing,
    Notification,
    PickupRequest,
    User,
)
from schemas import UserRead

router = APIRouter(tags=["users"])


@router.get("/", response_model=List[UserRead])
def list_users(session: SessionDep, current: UserRoleDep):
    """
    List all users (admin only).
    """
    ensure_role(current["role"], "admin")
    return session.exec(select(User)).all()


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, session: SessionDep):
    """
    Get a single user by ID.
    """
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.delete("/me", status_code=204)
def delete_own_account(
    session: SessionDep,
    current: UserRoleDep,
):
    user = current["user"]

    if user.id is None:
        raise HTTPException(status_code=400, detail="User has no id")

    my_listing_ids = [
        listing.id
        for listing in session.exec(
            select(FoodListing).where(FoodListing.donor_id == user.id)
        ).all()
    ]

    # Every request this user takes part in, as receiver, volunteer or donor
    involved = session.exec(
        select(PickupRequest).where(
            or_(
                PickupRequest.receiver_id == user.id,
                PickupRequest.volunteer_id == user.id,
                PickupRequest.listing_id.in_(my_listing_ids),
            )
        )
    ).all()

    if any(req.status in ACTIVE_REQUEST_STATUSES for req in involved):
        raise HTTPException(
            status_code=409,
            detail="Finish or cancel your active pickup requests first.",
        )

    for req in involved:
        session.delete(req)
    session.flush()

    for listing_id in my_listing_ids:
        session.delete(session.get(FoodListing, listing_id))

    for notification in session.exec(
        select(Notification).where(Notification.user_id == user.id)
    ).all():
        session.delete(notification)

    session.delete(user)
    session.commit()

    return Response(status_code=204)
