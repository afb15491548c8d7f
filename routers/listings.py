from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Response
from sqlmodel import select

from db import SessionDep
from models import FoodCategory, FoodListing, ListingStatus, utcnow
from schemas import ListingCreate, ListingUpdate
from services.errors import NotFoundError
from services.geo import nearest_first
from services.stores import ListingStore, RequestLedger
from .auth import UserRoleDep, ensure_role

router = APIRouter(tags=["listings"])


@router.get("/mine", response_model=List[FoodListing])
def my_listings(session: SessionDep, current: UserRoleDep):
    """
    The current donor's listings, newest first.
    """
    ensure_role(current["role"], "donor")
    return ListingStore(session).list_by_donor(current["user"].id)


@router.get("/available", response_model=List[FoodListing])
def available_listings(session: SessionDep):
    return ListingStore(session).list_by_status(ListingStatus.AVAILABLE)


@router.get("/{listing_id}", response_model=FoodListing)
def get_listing(listing_id: int, session: SessionDep):
    """
    Get a single listing by ID.
    """
    listing = session.get(FoodListing, listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail="Listing not found")
    return listing


@router.post("/", response_model=FoodListing)
def create_listing(listing_in: ListingCreate, session: SessionDep, current: UserRoleDep):
    """
    Post a new listing owned by the current donor. It starts out available.
    """
    ensure_role(current["role"], "donor")

    listing = FoodListing(
        donor_id=current["user"].id,
        status=ListingStatus.AVAILABLE,
        **listing_in.model_dump(),
    )

    ListingStore(session).add(listing)
    session.commit()
    session.refresh(listing)
    return listing


@router.get("/", response_model=List[FoodListing])
def list_listings(
    session: SessionDep,
    category: Optional[FoodCategory] = None,
    status: Optional[ListingStatus] = None,
    donor_id: Optional[int] = None,
    dietary_tag: Optional[str] = None,
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lng: Optional[float] = Query(default=None, ge=-180, le=180),
    max_km: Optional[float] = Query(default=None, gt=0),
):
    """
    List listings, optionally filtered by category, status, donor and dietary tag.
    With `lat`/`lng`, only listings within `max_km` (default 50) are kept,
    closest first.
    """
    if (lat is None) != (lng is None):
        raise HTTPException(status_code=400, detail="lat and lng must be given together")
    if max_km is not None and lat is None:
        raise HTTPException(status_code=400, detail="max_km needs lat and lng")

    query = select(FoodListing)

    if category is not None:
        query = query.where(FoodListing.category == category)

    if status is not None:
        query = query.where(FoodListing.status == status)

    if donor_id is not None:
        query = query.where(FoodListing.donor_id == donor_id)

    query = query.order_by(FoodListing.created_at.desc(), FoodListing.id.desc())
    results = session.exec(query).all()

    # Tags live in a JSON column, so match them here rather than in SQL
    if dietary_tag:
        tag = dietary_tag.strip().lower()
        results = [listing for listing in results if tag in (listing.dietary_tags or [])]

    if lat is not None:
        results = nearest_first(results, lat, lng, max_km)

    return results


def _owned_listing(session: SessionDep, listing_id: int, current: dict, action: str) -> FoodListing:
    user = current["user"]
    role = current["role"]

    ensure_role(role, "donor")

    try:
        listing = ListingStore(session).get_by_id(listing_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Listing not found")

    if role != "admin" and listing.donor_id != user.id:
        raise HTTPException(
            status_code=403,
            detail=f"You can only {action} listings you donated.",
        )
    return listing


@router.patch("/{listing_id}", response_model=FoodListing)
def update_listing(
    listing_id: int,
    listing_in: ListingUpdate,
    session: SessionDep,
    current: UserRoleDep,
):
    """
    Edit the details of a listing. Its status is left to the pickup flow.
    """
    listing = _owned_listing(session, listing_id, current, "edit")

    for field, value in listing_in.model_dump(exclude_unset=True).items():
        setattr(listing, field, value)
    listing.updated_at = utcnow()

    session.add(listing)
    session.commit()
    session.refresh(listing)
    return listing


@router.delete("/{listing_id}", status_code=204)
def delete_listing(
    listing_id: int,
    session: SessionDep,
    current: UserRoleDep,
):
    _owned_listing(session, listing_id, current, "delete")

    if RequestLedger(session).active_for_listing(listing_id):
        raise HTTPException(
            status_code=400,
            detail="Cannot delete a listing with an active pickup request.",
        )

    ListingStore(session).delete(listing_id)
    session.commit()
    return Response(status_code=204)
