from typing import Union

from models import RequestStatus

STATUS_LABELS = {
    RequestStatus.PENDING: "Pending",
    RequestStatus.DONOR_APPROVED: "Approved by Donor",
    RequestStatus.VOLUNTEER_REQUESTED: "Awaiting Volunteer",
    RequestStatus.VOLUNTEER_ACCEPTED: "Volunteer Assigned",
    RequestStatus.PICKED_UP: "Picked Up",
    RequestStatus.DELIVERED: "Delivered",
    RequestStatus.CONFIRMED: "Confirmed",
    RequestStatus.CANCELLED: "Cancelled",
}

STATUS_COLORS = {
    RequestStatus.PENDING: "bg-yellow-500",
    RequestStatus.DONOR_APPROVED: "bg-sky-500",
    RequestStatus.VOLUNTEER_REQUESTED: "bg-purple-500",
    RequestStatus.VOLUNTEER_ACCEPTED: "bg-blue-500",
    RequestStatus.PICKED_UP: "bg-orange-500",
    RequestStatus.DELIVERED: "bg-green-600",
    RequestStatus.CONFIRMED: "bg-emerald-700",
    RequestStatus.CANCELLED: "bg-muted-foreground",
}

MUTED = "bg-muted-foreground"


def _coerce(status: Union[RequestStatus, str]):
    try:
        return RequestStatus(status)
    except ValueError:
        return None


def status_label(status: Union[RequestStatus, str]) -> str:
    known = _coerce(status)
    if known is None:
        return str(status)
    return STATUS_LABELS[known]


def status_color(status: Union[RequestStatus, str]) -> str:
    known = _coerce(status)
    return STATUS_COLORS.get(known, MUTED) if known is not None else MUTED
