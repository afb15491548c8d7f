from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Column, Enum as SAEnum
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ListingStatus(str, Enum):
    AVAILABLE = "available"
    CLAIMED = "claimed"
    COMPLETED = "completed"
    EXPIRED = "expired"


class RequestStatus(str, Enum):
    PENDING = "pending"
    DONOR_APPROVED = "donor_approved"
    VOLUNTEER_REQUESTED = "volunteer_requested"
    VOLUNTEER_ACCEPTED = "volunteer_accepted"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


ACTIVE_REQUEST_STATUSES = frozenset(
    {
        RequestStatus.PENDING,
        RequestStatus.DONOR_APPROVED,
        RequestStatus.VOLUNTEER_REQUESTED,
        RequestStatus.VOLUNTEER_ACCEPTED,
        RequestStatus.PICKED_UP,
        RequestStatus.DELIVERED,
    }
)
TERMINAL_REQUEST_STATUSES = frozenset(
    {RequestStatus.CONFIRMED, RequestStatus.CANCELLED}
)


class FoodCategory(str, Enum):
    COOKED = "cooked"
    RAW = "raw"
    PACKAGED = "packaged"
    BAKED = "baked"
    BEVERAGES = "beverages"
    OTHER = "other"


def _enum_column(enum_cls: type[Enum]) -> Column:
    # Persist the lowercase values; an unknown stored value fails on read.
    return Column(
        SAEnum(
            enum_cls,
            values_callable=lambda members: [m.value for m in members],
            native_enum=False,
            validate_strings=True,
            length=32,
        ),
        nullable=False,
        index=True,
    )


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: str
    phone: Optional[str] = None
    is_donor: bool = False
    is_receiver: bool = False
    is_volunteer: bool = False
    is_ngo: bool = False
    is_admin: bool = False
    password_hash: str


class FoodListing(SQLModel, table=True):
    __tablename__ = "food_listing"

    id: Optional[int] = Field(default=None, primary_key=True)
    donor_id: int = Field(foreign_key="user.id", index=True)

    title: str
    description: Optional[str] = None
    category: FoodCategory = Field(
        default=FoodCategory.OTHER, sa_column=_enum_column(FoodCategory)
    )
    dietary_tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    pickup_address: Optional[str] = None
    image_url: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    status: ListingStatus = Field(
        default=ListingStatus.AVAILABLE, sa_column=_enum_column(ListingStatus)
    )


class PickupRequest(SQLModel, table=True):
    __tablename__ = "pickup_request"

    id: Optional[int] = Field(default=None, primary_key=True)
    listing_id: int = Field(foreign_key="food_listing.id", index=True)
    receiver_id: int = Field(foreign_key="user.id", index=True)
    volunteer_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)

    note: Optional[str] = None
    self_pickup: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    status: RequestStatus = Field(
        default=RequestStatus.PENDING, sa_column=_enum_column(RequestStatus)
    )


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    type: str
    title: str
    body: Optional[str] = None
    link: Optional[str] = None
    read: bool = False
    created_at: datetime = Field(default_factory=utcnow)
