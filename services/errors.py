"""
Errors raised by the pickup-request core.

Routers translate these into HTTP responses; nothing in the core retries.
"""

from typing import Optional


class PickupError(Exception):
    """Base class for every error the core raises."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(PickupError):
    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class StaleStateError(PickupError):
    """The stored status no longer matches what the transition expects."""

    def __init__(self, request_id: int, current: Optional[str], expected: object):
        super().__init__(
            f"Request {request_id} is {current}, expected {expected}; "
            "someone else already updated this request"
        )
        self.request_id = request_id
        self.current = current
        self.expected = expected


class ListingNotAvailableError(PickupError):
    def __init__(self, listing_id: int, current: Optional[str] = None):
        detail = f" (currently {current})" if current else ""
        super().__init__(f"Listing {listing_id} is not available{detail}")
        self.listing_id = listing_id
        self.current = current


class ValidationError(PickupError):
    pass


class NotificationDeliveryError(PickupError):
    """Logged by the sink; never propagated to callers."""
