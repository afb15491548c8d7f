"""
Who hears about each pickup transition, and what they are told.

Pure data: the transition engine looks rules up by trigger and renders them
against the request/listing it just changed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Literal, Optional, Tuple


class Transition(str, Enum):
    CREATE = "create"
    DONOR_APPROVE = "donor_approve"
    DONOR_REJECT = "donor_reject"
    CANCEL = "cancel"
    SELF_PICKUP = "receiver_self_pickup"
    REQUEST_VOLUNTEER = "request_volunteer"
    VOLUNTEER_ACCEPT = "volunteer_accept"
    VOLUNTEER_PICKED_UP = "volunteer_picked_up"
    VOLUNTEER_DELIVERED = "volunteer_delivered"
    RECEIVER_CONFIRM = "receiver_confirm"


Recipient = Literal["donor", "receiver", "volunteer"]


@dataclass(frozen=True)
class NotificationRule:
    trigger: Transition
    recipient: Recipient
    type: str
    title: str
    body_template: str
    link_template: Optional[str] = None


DONOR_LINK = "/dashboard/donor"
RECEIVER_LINK = "/dashboard/receiver"
VOLUNTEER_LINK = "/dashboard/volunteer"

RULES: Tuple[NotificationRule, ...] = (
    NotificationRule(
        Transition.CREATE,
        "donor",
        "new_request",
        "New pickup request",
        'Someone requested your listing "{listing_title}".',
        DONOR_LINK,
    ),
    NotificationRule(
        Transition.DONOR_APPROVE,
        "receiver",
        "request_approved",
        "Request approved",
        'The donor approved your request for "{listing_title}". '
        "Pick it up yourself or ask for a volunteer.",
        RECEIVER_LINK,
    ),
    NotificationRule(
        Transition.DONOR_REJECT,
        "receiver",
        "request_rejected",
        "Request declined",
        'The donor declined your request for "{listing_title}".',
        RECEIVER_LINK,
    ),
    NotificationRule(
        Transition.CANCEL,
        "donor",
        "request_cancelled",
        "Request cancelled",
        'A request for "{listing_title}" was cancelled. The listing is available again.',
        DONOR_LINK,
    ),
    NotificationRule(
        Transition.SELF_PICKUP,
        "donor",
        "self_pickup",
        "Receiver is picking up",
        'The receiver will collect "{listing_title}" in person.',
        DONOR_LINK,
    ),
    NotificationRule(
        Transition.VOLUNTEER_ACCEPT,
        "receiver",
        "request_accepted",
        "Volunteer accepted",
        'A volunteer accepted the delivery of "{listing_title}".',
        RECEIVER_LINK,
    ),
    NotificationRule(
        Transition.VOLUNTEER_PICKED_UP,
        "receiver",
        "food_picked_up",
        "Food picked up",
        '"{listing_title}" has been picked up and is on its way.',
        RECEIVER_LINK,
    ),
    NotificationRule(
        Transition.VOLUNTEER_DELIVERED,
        "receiver",
        "food_delivered",
        "Food delivered",
        '"{listing_title}" was delivered. Please confirm you received it.',
        RECEIVER_LINK,
    ),
    NotificationRule(
        Transition.RECEIVER_CONFIRM,
        "donor",
        "delivery_confirmed",
        "Delivery confirmed",
        'The receiver confirmed "{listing_title}" arrived. Thank you for donating!',
        DONOR_LINK,
    ),
    NotificationRule(
        Transition.RECEIVER_CONFIRM,
        "volunteer",
        "delivery_confirmed",
        "Delivery confirmed",
        'The receiver confirmed your delivery of "{listing_title}".',
        VOLUNTEER_LINK,
    ),
)

_BY_TRIGGER: Dict[Transition, Tuple[NotificationRule, ...]] = {
    trigger: tuple(rule for rule in RULES if rule.trigger is trigger)
    for trigger in Transition
}


def rules_for(transition: Transition) -> Tuple[NotificationRule, ...]:
    return _BY_TRIGGER[transition]


def render(rule: NotificationRule, data: dict) -> Tuple[str, str, Optional[str]]:
    """Return (title, body, link) for a rule filled in from `data`."""
    body = rule.body_template.format(**data)
    link = rule.link_template.format(**data) if rule.link_template else None
    return rule.title, body, link
