"""Review domain events, published after commit."""

from dataclasses import dataclass

from shared.domain.base import DomainEvent


@dataclass
class RatingSubmitted(DomainEvent):
    """
    Event: Tenant rated a completed stay

    Triggers:
    - Recompute the apartment's average rating
    """
    rating_id: int
    booking_id: int
    apartment_id: int
    tenant_id: int
    rating: int
