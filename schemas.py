from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from models import FoodCategory, ListingStatus, RequestStatus

Role = Literal["donor", "receiver", "volunteer", "ngo", "admin"]


def _clean_tags(tags: List[str]) -> List[str]:
    seen = []
    for tag in tags:
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class ListingCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    category: FoodCategory = FoodCategory.OTHER
    dietary_tags: List[str] = Field(default_factory=list)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    pickup_address: Optional[str] = None
    image_url: Optional[str] = None
    expires_at: Optional[datetime] = None

    @field_validator("dietary_tags")
    @classmethod
    def dedupe_tags(cls, tags: List[str]) -> List[str]:
        return _clean_tags(tags)


class ListingUpdate(BaseModel):
    """
    Partial edit by the owning donor. Status is not editable here; only
    pickup requests move it.
    """

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[FoodCategory] = None
    dietary_tags: Optional[List[str]] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    pickup_address: Optional[str] = None
    image_url: Optional[str] = None
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("title", "category")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value

    @field_validator("dietary_tags")
    @classmethod
    def dedupe_tags(cls, tags: Optional[List[str]]) -> Optional[List[str]]:
        return None if tags is None else _clean_tags(tags)


class RequestCreate(BaseModel):
    listing_id: int = Field(gt=0)
    note: Optional[str] = None


class LegacyStatusUpdate(BaseModel):
    status: str = Field(pattern="^(picked_up|delivered|cancelled)$")


class ListingSummary(BaseModel):
    id: int
    title: str
    pickup_address: Optional[str] = None
    image_url: Optional[str] = None
    donor_id: int
    status: ListingStatus

    model_config = ConfigDict(from_attributes=True)


class RequestView(BaseModel):
    id: int
    listing_id: int
    receiver_id: int
    volunteer_id: Optional[int] = None
    status: RequestStatus
    status_label: str
    status_color: str
    note: Optional[str] = None
    self_pickup: bool
    created_at: datetime
    updated_at: datetime
    listing: ListingSummary


class NotificationRead(BaseModel):
    id: int
    type: str
    title: str
    body: Optional[str] = None
    link: Optional[str] = None
    read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    email: EmailStr
    name: str
    password: str = Field(min_length=4)
    phone: Optional[str] = None
    roles: List[Role] = Field(min_length=1)


class UserRead(BaseModel):
    id: int
    email: EmailStr
    name: str
    is_donor: bool
    is_receiver: bool
    is_volunteer: bool
    is_ngo: bool
    is_admin: bool

    model_config = ConfigDict(from_attributes=True)


class LoginData(BaseModel):
    email: EmailStr
    password: str

    role: Role
